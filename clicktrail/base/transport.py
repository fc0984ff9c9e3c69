# ==============================================================================
# Delivery Transport Abstract Base Class
# ==============================================================================
"""
Base class for delivery transports used by the capture agent.

A transport moves one JSON payload to the collection endpoint. Transports
never raise: every attempt produces a DeliveryResult whose error variant the
caller logs and discards.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from clicktrail.core.errors import TransportError


@dataclass
class DeliveryResult:
    """Outcome of one delivery attempt.

    Attributes:
        transport: Name of the transport that handled the attempt
        ok: Whether the payload was delivered (or, for fire-and-forget
            transports, accepted for delivery)
        status_code: HTTP status when a response was received
        error: Failure description when ok is False
    """

    transport: str
    ok: bool
    status_code: int | None = None
    error: TransportError | None = None

    @classmethod
    def success(cls, transport: str, status_code: int | None = None) -> "DeliveryResult":
        return cls(transport=transport, ok=True, status_code=status_code)

    @classmethod
    def failure(
        cls, transport: str, message: str, status_code: int | None = None
    ) -> "DeliveryResult":
        return cls(
            transport=transport,
            ok=False,
            status_code=status_code,
            error=TransportError(message, transport=transport),
        )


class Transport(ABC):
    """A way of getting a payload to the collection endpoint."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short transport name used in logs (e.g. 'request', 'beacon', 'sync')."""
        ...

    @property
    def available(self) -> bool:
        """Whether the transport can be used in the current environment."""
        return True

    @abstractmethod
    def send(self, method: str, url: str, payload: dict) -> DeliveryResult:
        """
        Send one payload.

        Args:
            method: HTTP method ("POST" or "PUT")
            url: Collection endpoint
            payload: JSON-serializable body

        Returns:
            DeliveryResult; never raises
        """
        ...

    def close(self) -> None:
        """Release transport resources. Optional override."""
        pass
