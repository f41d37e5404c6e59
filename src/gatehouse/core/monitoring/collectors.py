"""
Target collectors — one async function per TargetType.

A collector receives a MonitoringTarget and returns a CollectorOutput: a
flat map of metric name → number plus whatever raw payload it gathered.
The monitoring loop only interprets the numbers.  Collectors signal
failure by raising; the loop turns the exception into a
``monitoring_error`` issue.

Built-ins:
  HttpHealthCollector  — GET an endpoint, report latency and availability
  PipelineCollector    — summarise recent validation executions
  ReportFileCollector  — read a JSON metrics report from disk
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import structlog

from gatehouse.core.exceptions import CollectorError
from gatehouse.core.monitoring.models import MonitoringTarget, TargetType
from gatehouse.core.regression.detector import is_number
from gatehouse.core.store.registry import EngineStore
from gatehouse.core.validation.models import ExecutionStatus, ValidationExecution

logger = structlog.get_logger()


@dataclass
class CollectorOutput:
    metrics: dict[str, float] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


CollectorFn = Callable[[MonitoringTarget], Awaitable[CollectorOutput]]


def extract_metrics(payload: Mapping[str, Any]) -> dict[str, float]:
    """Keep the top-level numeric entries of *payload* (booleans excluded)."""
    return {k: float(v) for k, v in payload.items() if is_number(v)}


# ---------------------------------------------------------------------------
# Built-in collectors
# ---------------------------------------------------------------------------


class HttpHealthCollector:
    """
    GET ``target.endpoint`` (or ``parameters["url"]``).

    Metrics: ``response_time`` (ms), ``status_code``, ``availability``
    (100 for a 2xx/3xx response, else 0) and ``error_rate`` (0 or 1).
    Transport errors propagate so the loop records them as faults.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __call__(self, target: MonitoringTarget) -> CollectorOutput:
        url = target.endpoint or target.parameters.get("url")
        if not url:
            raise CollectorError(f"Target {target.id!r} has no endpoint")

        start = time.monotonic()
        resp = await self._get_client().get(url, timeout=target.timeout_seconds)
        elapsed_ms = (time.monotonic() - start) * 1000

        healthy = resp.status_code < 400
        raw: dict[str, Any] = {"url": url, "status_code": resp.status_code}
        if "application/json" in resp.headers.get("content-type", ""):
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                raw["body"] = body

        metrics = {
            "response_time": elapsed_ms,
            "status_code": float(resp.status_code),
            "availability": 100.0 if healthy else 0.0,
            "error_rate": 0.0 if healthy else 1.0,
        }
        # A JSON health body may report its own numbers (e.g. pass_rate)
        if isinstance(raw.get("body"), dict):
            for key, value in extract_metrics(raw["body"]).items():
                metrics.setdefault(key, value)
        return CollectorOutput(metrics=metrics, raw=raw)


class PipelineCollector:
    """
    Summarise the most recent finished validation executions in *store*.

    ``parameters["pipeline_id"]`` restricts the window to one pipeline.
    Metrics: ``validation_score`` (mean overall score), ``pass_rate`` (%),
    ``total_validations`` and ``failed_validations``.
    """

    def __init__(self, store: EngineStore, window: int = 20) -> None:
        self._store = store
        self._window = window

    async def __call__(self, target: MonitoringTarget) -> CollectorOutput:
        pipeline_id = target.parameters.get("pipeline_id")
        window = int(target.parameters.get("window", self._window))

        def finished(e: ValidationExecution) -> bool:
            if e.status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
                return False
            return pipeline_id is None or e.pipeline_id == pipeline_id

        executions = sorted(self._store.executions.filter(finished), key=lambda e: e.started_at)
        recent = executions[-window:]
        if not recent:
            return CollectorOutput(
                metrics={"total_validations": 0.0, "failed_validations": 0.0},
                raw={"pipeline_id": pipeline_id},
            )

        passed = sum(1 for e in recent if e.passed)
        return CollectorOutput(
            metrics={
                "validation_score": sum(e.overall_score for e in recent) / len(recent),
                "pass_rate": passed / len(recent) * 100,
                "total_validations": float(len(recent)),
                "failed_validations": float(len(recent) - passed),
            },
            raw={"pipeline_id": pipeline_id, "executions": [e.id for e in recent]},
        )


class ReportFileCollector:
    """
    Read a JSON report from ``parameters["path"]``.

    Numeric top-level keys become metrics.  A report with ``total`` and
    ``passed`` counts (test-suite output) also yields ``pass_rate``.
    """

    async def __call__(self, target: MonitoringTarget) -> CollectorOutput:
        path = target.parameters.get("path")
        if not path:
            raise CollectorError(f"Target {target.id!r} has no report path")
        text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CollectorError(f"Report {path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise CollectorError(f"Report {path} must contain a JSON object")

        metrics = extract_metrics(payload)
        total = metrics.get("total")
        if total and "passed" in metrics and "pass_rate" not in metrics:
            metrics["pass_rate"] = metrics["passed"] / total * 100
        return CollectorOutput(metrics=metrics, raw=payload)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CollectorRegistry:
    """Dispatch table from TargetType to collector."""

    def __init__(self) -> None:
        self._collectors: dict[TargetType, CollectorFn] = {}

    def register(self, target_type: TargetType, collector: CollectorFn) -> None:
        self._collectors[TargetType(target_type)] = collector

    def get(self, target_type: TargetType) -> CollectorFn | None:
        return self._collectors.get(target_type)

    def types(self) -> list[TargetType]:
        return list(self._collectors)

    def __contains__(self, target_type: Any) -> bool:
        return target_type in self._collectors

    async def aclose(self) -> None:
        """Close every collector holding resources; a shared instance is closed once."""
        closed: set[int] = set()
        for collector in self._collectors.values():
            close = getattr(collector, "aclose", None)
            if close is None or id(collector) in closed:
                continue
            closed.add(id(collector))
            await close()


def get_default_collectors(
    store: EngineStore,
    client: httpx.AsyncClient | None = None,
) -> CollectorRegistry:
    registry = CollectorRegistry()
    http = HttpHealthCollector(client)
    reports = ReportFileCollector()
    registry.register(TargetType.INTEGRATION, http)
    registry.register(TargetType.PERFORMANCE, http)
    registry.register(TargetType.VALIDATION_PIPELINE, PipelineCollector(store))
    registry.register(TargetType.TEST_SUITE, reports)
    registry.register(TargetType.SECURITY, reports)
    return registry
