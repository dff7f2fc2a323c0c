"""
Error classification for the trade tape pipeline.

Splits failures into data quality issues (bad or foreign payloads that are
dropped), system failures (transport and state machine misuse) and recovery
categories that tell the caller whether a retry makes sense.
"""

from .data_quality import (
    DataQualityError,
    MalformedDataError,
    MissingDataError,
    ForeignInstrumentError,
)
from .system_failures import (
    SystemFailureError,
    SubscriptionStateError,
    TransportError,
)
from .recovery import (
    RecoverableError,
    UnrecoverableError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedDataError",
    "MissingDataError",
    "ForeignInstrumentError",
    # System Failures
    "SystemFailureError",
    "SubscriptionStateError",
    "TransportError",
    # Recovery Categories
    "RecoverableError",
    "UnrecoverableError",
]
