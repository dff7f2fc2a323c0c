"""
Data quality error classifications for stream payload processing.

These exceptions describe payloads that are dropped without touching the
ledger. None of them is fatal.
"""

from typing import Any, Optional


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedDataError(DataQualityError):
    """Payload exists but is in incorrect format."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class MissingDataError(DataQualityError):
    """Required field is completely missing."""

    def __init__(self, message: str, data_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.data_type = data_type


class ForeignInstrumentError(DataQualityError):
    """Incremental trade carries an instrument other than the subscribed one."""

    def __init__(self, message: str, instrument: Optional[str] = None,
                 expected_instrument: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.instrument = instrument
        self.expected_instrument = expected_instrument
