"""Base classes for feed transports and their listeners."""

from abc import ABC, abstractmethod


class TransportListener(ABC):
    """Receives connection events from a transport."""

    @abstractmethod
    def on_open(self) -> None:
        """Connection established."""
        pass

    @abstractmethod
    def on_message(self, raw_data: str) -> None:
        """Raw text message received."""
        pass

    @abstractmethod
    def on_close(self, will_retry: bool) -> None:
        """Connection closed; ``will_retry`` is False when the transport gives up."""
        pass

    def should_reconnect(self) -> bool:
        """Consulted before each reconnect attempt."""
        return True


class FeedTransport(ABC):
    """Connection to the push feed."""

    @abstractmethod
    def start(self) -> None:
        """Begin connecting in the background."""
        pass

    @abstractmethod
    def send(self, text: str) -> None:
        """
        Send a text frame.

        Raises:
            TransportError: If the connection is not open or the send fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection and stop reconnecting. Safe to call twice."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass
