"""
rewards_deployer.observability

Logging for operators and CI.

Responsibilities:
- structlog setup (JSON or console rendering) in `observability.logging`.
- Run-scoped context (run id, network) on every log line.
"""
