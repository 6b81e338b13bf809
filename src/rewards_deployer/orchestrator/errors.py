"""
rewards_deployer.orchestrator.errors

Domain-specific exceptions raised by the deployment pipeline.

Responsibilities:
- Name every failure a step can end in with a stable `kind` string.
- Separate local precondition failures (nothing reached the chain) from remote ones.
- Carry the failing step and cause up to the service/CLI layer.
- Signal an explicit operator confirmation before a non-idempotent step is re-sent.
"""

from __future__ import annotations

from typing import Any


class DeploymentError(Exception):
    """Base class for all step failures."""

    kind: str = "DeploymentError"
    # Local failures are detected before any transaction is sent.
    local: bool = False


class ChainUnavailable(DeploymentError):
    kind = "ChainUnavailable"


class TransactionRejected(DeploymentError):
    kind = "TransactionRejected"


class ConfirmationTimeout(DeploymentError):
    """Confirmation not observed in time; the transaction may still land."""

    kind = "Timeout"


class CallReverted(DeploymentError):
    """A read-only call reverted on the node."""

    kind = "CallReverted"


class InvalidParameters(DeploymentError):
    kind = "InvalidParameters"
    local = True

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class InsufficientBalance(DeploymentError):
    kind = "InsufficientBalance"
    local = True

    def __init__(self, message: str, *, balance: int | None = None, required: int | None = None) -> None:
        self.balance = balance
        self.required = required
        super().__init__(message)


class RecordNotFound(DeploymentError):
    kind = "RecordNotFound"
    local = True


class NotFunded(DeploymentError):
    kind = "NotFunded"
    local = True


LOCAL_ERROR_KINDS = frozenset(
    cls.kind for cls in (InvalidParameters, InsufficientBalance, RecordNotFound, NotFunded)
)


class DeploymentFailed(Exception):
    """
    Raised by the orchestrator when a step fails; the run is halted in `FAILED`.
    """

    def __init__(self, step: str, cause: BaseException, state: dict[str, Any] | None = None) -> None:
        self.step = step
        self.cause = cause
        self.state = dict(state or {})
        super().__init__(f"{step} failed: {error_kind(cause)}: {cause}")


class ConfirmationRequired(Exception):
    """
    Raised on resume when the failed step may already have reached the chain.
    The operator re-runs with an explicit confirmation once chain state is checked.
    """

    def __init__(self, *, step: str, reason: str, payload: dict[str, Any] | None = None) -> None:
        self.step = step
        self.reason = reason
        self.payload = dict(payload or {})
        super().__init__(f"{step}: {reason}")


class CheckpointFailed(Exception):
    """
    Persisting a snapshot failed after a step had completed. The step itself succeeded,
    so the stored run may lag the chain by that step.
    """

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"checkpoint at {stage} failed: {error_kind(cause)}: {cause}")


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, DeploymentError):
        return exc.kind
    return type(exc).__name__


# --- Module Notes -----------------------------------------------------------
# The orchestrator records `error_kind(...)` in run state; the CLI prints it next to
# the failing step name. Nothing in this package retries on these errors.
