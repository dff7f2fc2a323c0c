"""Tests for the logging helpers."""

from unittest.mock import Mock

from tradetape.logging.config import (
    configure_logging,
    get_logger,
    get_subscription_logger,
    log_subscription_transition,
)


class TestLoggingHelpers:
    """Test logger construction and transition logging."""

    def test_configure_logging_json(self):
        configure_logging(level="DEBUG", format_json=True, include_caller=True)

        assert get_logger(__name__) is not None

    def test_subscription_logger_binding(self):
        logger = get_subscription_logger(__name__)

        assert logger is not None

    def test_log_subscription_transition(self):
        logger = Mock()
        bound = logger.bind.return_value

        log_subscription_transition(logger, "unsubscribed", "subscribed", "connection_open",
                                    instrument="PI_XBTUSD", context={"will_retry": True})

        logger.bind.assert_called_once_with(
            from_phase="unsubscribed",
            to_phase="subscribed",
            trigger="connection_open",
            instrument="PI_XBTUSD",
        )
        bound.bind.assert_called_once_with(context={"will_retry": True})
        bound.bind.return_value.info.assert_called_once_with("Subscription transition")

    def test_log_subscription_transition_without_context(self):
        logger = Mock()

        log_subscription_transition(logger, "subscribed", "unsubscribed", "connection_close")

        logger.bind.return_value.info.assert_called_once_with("Subscription transition")
