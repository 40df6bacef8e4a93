"""
Base control transport interface.

This module defines the abstract base class that all control transports must
implement.
"""

from abc import ABC, abstractmethod


class ControlTransport(ABC):
    """Abstract base class for control channel transports."""

    @abstractmethod
    def send(self, command: str) -> str:
        """Send one command and return the trimmed response text."""
        pass

    @abstractmethod
    def read_framed_response(self) -> str:
        """Read one complete response from the channel."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the channel."""
        pass
