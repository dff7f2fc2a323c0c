"""
System failure error classifications.

These exceptions represent failures of the machinery around the ledger: the
transport refusing a send, or a subscription request the state machine
cannot honour.
"""

from typing import Any, Optional


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class SubscriptionStateError(SystemFailureError):
    """Subscription request that is invalid in the current controller state."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class TransportError(SystemFailureError):
    """Transport could not carry out a send or close."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
