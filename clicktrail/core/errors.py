# ==============================================================================
# Error Taxonomy
# ==============================================================================
"""
Exceptions shared by the ingestion service, the session store adapters and
the capture agent.

Server side:
- ValidationError: client sent a request missing a required field (HTTP 400)
- NotFoundError: single-session read for an unknown session id (HTTP 404)
- StoreError: the session store could not be reached or written (HTTP 500)

Client side:
- TransportError: a delivery attempt failed. It is carried inside a
  DeliveryResult and logged, never raised into page code.
"""


class ClicktrailError(Exception):
    """Base class for all clicktrail errors."""

    status_code = 500


class ValidationError(ClicktrailError):
    """A required request field is missing or malformed."""

    status_code = 400


class NotFoundError(ClicktrailError):
    """The requested session does not exist."""

    status_code = 404


class StoreError(ClicktrailError):
    """The session store failed to read or write."""

    status_code = 500


class TransportError(ClicktrailError):
    """A client-side delivery attempt failed."""

    def __init__(self, message: str, transport: str | None = None):
        super().__init__(message)
        self.transport = transport
