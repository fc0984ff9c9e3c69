# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the ports of the ports-and-adapters architecture.

- SessionRepository: server-side session persistence
- ClientStorage: capture agent local storage
- Transport / DeliveryResult: capture agent delivery
"""

from clicktrail.base.repositories import SessionRepository
from clicktrail.base.storage import ClientStorage
from clicktrail.base.transport import DeliveryResult, Transport

__all__ = [
    "ClientStorage",
    "DeliveryResult",
    "SessionRepository",
    "Transport",
]
