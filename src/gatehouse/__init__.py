"""
Gatehouse — integration validation and orchestration engine.

Gatehouse takes a backlog of proposed features and turns it into a
dependency-respecting, risk-ordered integration plan. Each feature can then be
run through a pipeline of validators, compared against performance baselines,
and watched by a continuous monitoring loop that raises and escalates alerts.

Package layout (src/gatehouse/):
  core/planning/    — priority scoring, dependency scheduling, priority matrix
  core/validation/  — validator checks, retry policy, pipeline runner
  core/regression/  — baseline regression detection, trend analysis
  core/monitoring/  — targets, collectors, alert manager, monitoring loop
  core/store/       — injected in-memory registries shared by the engines
  channels/         — alert notification channels (log, webhook, Slack, email)
  cli/              — Click CLI entry point
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
