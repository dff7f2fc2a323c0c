"""
Recovery strategy classifications for error handling.

These help categorize errors by their recovery characteristics and guide
whether the transport keeps retrying.
"""


class RecoverableError(Exception):
    """Errors that can be recovered from automatically."""

    def __init__(self, message: str, retry_count: int = 0,
                 max_retries: int = 5, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.recoverable = True

    @property
    def retries_exhausted(self) -> bool:
        return self.retry_count >= self.max_retries


class UnrecoverableError(Exception):
    """Errors that require human intervention."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.recoverable = False
