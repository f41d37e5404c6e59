"""Unit tests for the built-in monitoring collectors."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from gatehouse.core.exceptions import CollectorError
from gatehouse.core.monitoring.collectors import (
    CollectorOutput,
    CollectorRegistry,
    HttpHealthCollector,
    PipelineCollector,
    ReportFileCollector,
    extract_metrics,
    get_default_collectors,
)
from gatehouse.core.monitoring.models import MonitoringTarget, TargetType
from gatehouse.core.store.registry import EngineStore
from gatehouse.core.validation.models import ExecutionStatus, ValidationExecution


def _target(ttype: TargetType = TargetType.INTEGRATION, **kw) -> MonitoringTarget:
    return MonitoringTarget(id="t", type=ttype, **kw)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestExtractMetrics:
    def test_numbers_only(self) -> None:
        payload = {"a": 1, "b": 2.5, "ok": True, "name": "x", "nested": {"c": 1}}
        assert extract_metrics(payload) == {"a": 1.0, "b": 2.5}


class TestHttpHealthCollector:
    @pytest.mark.asyncio
    async def test_healthy_endpoint(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"pass_rate": 97.5, "availability": 50})

        collector = HttpHealthCollector(_client(handler))
        output = await collector(_target(endpoint="http://svc.local/health"))

        assert seen == ["http://svc.local/health"]
        assert output.metrics["status_code"] == 200
        assert output.metrics["availability"] == 100.0
        assert output.metrics["error_rate"] == 0.0
        assert output.metrics["response_time"] >= 0
        # body numbers never override the collector's own metrics
        assert output.metrics["pass_rate"] == 97.5
        assert output.raw["body"]["availability"] == 50

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        collector = HttpHealthCollector(_client(lambda request: httpx.Response(503)))
        output = await collector(_target(parameters={"url": "http://svc.local/health"}))
        assert output.metrics["availability"] == 0.0
        assert output.metrics["error_rate"] == 1.0
        assert "body" not in output.raw

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        collector = HttpHealthCollector(_client(handler))
        with pytest.raises(httpx.ConnectError):
            await collector(_target(endpoint="http://svc.local/health"))

    @pytest.mark.asyncio
    async def test_missing_endpoint(self) -> None:
        with pytest.raises(CollectorError):
            await HttpHealthCollector(_client(lambda r: httpx.Response(200)))(_target())

    @pytest.mark.asyncio
    async def test_aclose_closes_own_client(self) -> None:
        collector = HttpHealthCollector()
        client = collector._get_client()
        await collector.aclose()
        assert client.is_closed
        assert collector._client is None

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        collector = HttpHealthCollector(client)
        await collector.aclose()
        assert not client.is_closed
        await client.aclose()


class TestPipelineCollector:
    def _store(self) -> EngineStore:
        store = EngineStore()
        base = datetime(2026, 1, 1, tzinfo=UTC)
        rows = [
            ("comprehensive", ExecutionStatus.COMPLETED, 90, True),
            ("comprehensive", ExecutionStatus.FAILED, 60, False),
            ("fast", ExecutionStatus.COMPLETED, 96, True),
            ("comprehensive", ExecutionStatus.RUNNING, 0, False),
        ]
        for i, (pipeline_id, status, score, passed) in enumerate(rows):
            execution = ValidationExecution(pipeline_id=pipeline_id, feature_id=f"f{i}")
            execution.status = status
            execution.overall_score = score
            execution.passed = passed
            execution.started_at = base + timedelta(minutes=i)
            store.executions.put(execution.id, execution)
        return store

    @pytest.mark.asyncio
    async def test_all_pipelines(self) -> None:
        output = await PipelineCollector(self._store())(_target(TargetType.VALIDATION_PIPELINE))
        assert output.metrics["total_validations"] == 3
        assert output.metrics["failed_validations"] == 1
        assert output.metrics["validation_score"] == pytest.approx(82.0)
        assert output.metrics["pass_rate"] == pytest.approx(200 / 3)

    @pytest.mark.asyncio
    async def test_filtered_by_pipeline(self) -> None:
        target = _target(
            TargetType.VALIDATION_PIPELINE, parameters={"pipeline_id": "comprehensive"}
        )
        output = await PipelineCollector(self._store())(target)
        assert output.metrics["pass_rate"] == 50.0
        assert output.metrics["validation_score"] == 75.0

    @pytest.mark.asyncio
    async def test_window(self) -> None:
        target = _target(TargetType.VALIDATION_PIPELINE, parameters={"window": 1})
        output = await PipelineCollector(self._store())(target)
        assert output.metrics["total_validations"] == 1
        assert output.metrics["validation_score"] == 96.0

    @pytest.mark.asyncio
    async def test_no_executions(self) -> None:
        output = await PipelineCollector(EngineStore())(_target(TargetType.VALIDATION_PIPELINE))
        assert output.metrics == {"total_validations": 0.0, "failed_validations": 0.0}


class TestReportFileCollector:
    @pytest.mark.asyncio
    async def test_pass_rate_derived(self, tmp_path: Path) -> None:
        report = tmp_path / "results.json"
        report.write_text(json.dumps({"total": 40, "passed": 38, "suite": "api"}))
        output = await ReportFileCollector()(
            _target(TargetType.TEST_SUITE, parameters={"path": str(report)})
        )
        assert output.metrics == {"total": 40.0, "passed": 38.0, "pass_rate": 95.0}
        assert output.raw["suite"] == "api"

    @pytest.mark.asyncio
    async def test_explicit_pass_rate_kept(self, tmp_path: Path) -> None:
        report = tmp_path / "results.json"
        report.write_text(json.dumps({"total": 10, "passed": 5, "pass_rate": 99}))
        output = await ReportFileCollector()(
            _target(TargetType.TEST_SUITE, parameters={"path": str(report)})
        )
        assert output.metrics["pass_rate"] == 99.0

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path: Path) -> None:
        report = tmp_path / "results.json"
        report.write_text("{not json")
        with pytest.raises(CollectorError):
            await ReportFileCollector()(
                _target(TargetType.TEST_SUITE, parameters={"path": str(report)})
            )

    @pytest.mark.asyncio
    async def test_non_object(self, tmp_path: Path) -> None:
        report = tmp_path / "results.json"
        report.write_text("[1, 2]")
        with pytest.raises(CollectorError):
            await ReportFileCollector()(
                _target(TargetType.TEST_SUITE, parameters={"path": str(report)})
            )

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        target = _target(TargetType.TEST_SUITE, parameters={"path": str(tmp_path / "nope.json")})
        with pytest.raises(FileNotFoundError):
            await ReportFileCollector()(target)

    @pytest.mark.asyncio
    async def test_missing_path(self) -> None:
        with pytest.raises(CollectorError):
            await ReportFileCollector()(_target(TargetType.TEST_SUITE))


class TestDefaultCollectors:
    def test_every_target_type_covered(self) -> None:
        registry = get_default_collectors(EngineStore())
        for ttype in TargetType:
            assert ttype in registry
        assert registry.get(TargetType.INTEGRATION) is registry.get(TargetType.PERFORMANCE)

    @pytest.mark.asyncio
    async def test_aclose_closes_shared_collector_once(self) -> None:
        class Closing:
            def __init__(self) -> None:
                self.closed = 0

            async def __call__(self, target: MonitoringTarget) -> CollectorOutput:
                return CollectorOutput(metrics={})

            async def aclose(self) -> None:
                self.closed += 1

        shared = Closing()
        registry = CollectorRegistry()
        registry.register(TargetType.INTEGRATION, shared)
        registry.register(TargetType.PERFORMANCE, shared)
        registry.register(TargetType.SECURITY, ReportFileCollector())
        await registry.aclose()
        assert shared.closed == 1

    @pytest.mark.asyncio
    async def test_default_registry_closes_http_client(self) -> None:
        registry = get_default_collectors(EngineStore())
        http = registry.get(TargetType.INTEGRATION)
        client = http._get_client()
        await registry.aclose()
        assert client.is_closed
