"""
analytics/errors.py
───────────────────
Exception taxonomy shared by the decision engines.

Only caller-contract violations are raised.  Missing or insufficient data
is never an error: engines degrade to empty lists, zero reports or
``detected=False`` patterns instead.
"""


class AnalyticsError(Exception):
    """Base class for every error raised by the analytics engines."""


class UnknownEntity(AnalyticsError, LookupError):
    """Raised when an operation references an experiment that does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' not found")


class InvalidStateTransition(AnalyticsError):
    """Raised when an experiment lifecycle move is not allowed from its state."""

    def __init__(self, experiment_id: str, current: str, action: str) -> None:
        self.experiment_id = experiment_id
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} experiment '{experiment_id}' while it is {current}"
        )


class InvalidTrafficAllocation(AnalyticsError, ValueError):
    """Raised when an experiment's variant set is malformed at creation time."""


class DuplicateEntity(AnalyticsError, ValueError):
    """Raised when creating an experiment whose id is already registered."""
