"""
Error taxonomy for the semantic grouping engine.

Pipeline-level failures (StageFailure) reach the caller of initialization.
Per-item failures (InferenceFailure, MalformedInput) are absorbed where they
occur so a batch of N tabs always yields N results.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tab_sorter.engine.models import ErrorEnvelope, LifecycleState


class TabSorterError(Exception):
    """Base class for all engine errors."""


class StageFailure(TabSorterError):
    """An initialization stage did not validate. Retryable by re-initializing."""

    def __init__(self, envelope: "ErrorEnvelope"):
        super().__init__(
            f"AI initialization failed at stage {envelope.stage.value}: {envelope.message}"
        )
        self.envelope = envelope


class NotReady(TabSorterError):
    """An embedding was requested before the lifecycle reached READY."""

    def __init__(self, state: "LifecycleState", reason: Optional[str] = None):
        message = f"AI model not ready (state: {state.value})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.state = state
        self.reason = reason


class InferenceFailure(TabSorterError):
    """A single embedding computation failed."""


class MalformedInput(TabSorterError, ValueError):
    """A tab URL could not be parsed."""


class InvalidTransition(TabSorterError):
    """A lifecycle transition that the state machine does not allow."""
