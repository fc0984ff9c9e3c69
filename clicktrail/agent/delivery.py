# ==============================================================================
# Delivery Subsystem
# ==============================================================================
"""
Transports that move event batches from the capture agent to the endpoint.

Three tiers, chosen by page lifecycle phase:

1. AsyncRequestTransport - normal operation. The request runs on a worker
   thread; the caller gets a Future and never waits on it.
2. BeaconTransport - page teardown. Hands the payload to a beacon that
   accepts it for background delivery and returns immediately, with no
   confirmation of success.
3. SyncTransport - page teardown when no beacon is available or the beacon
   refused the payload. Blocks briefly (short timeout) so the request is
   dispatched before the page goes away.

No tier retries and no tier raises: each attempt ends in a DeliveryResult.
"""

import json
import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

import requests

from clicktrail.base.transport import DeliveryResult, Transport
from clicktrail.utils.config import AgentSettings

logger = logging.getLogger(__name__)

# Beacon signature: (url, body bytes) -> True if the payload was queued
BeaconFunc = Callable[[str, bytes], bool]

JSON_HEADERS = {"Content-Type": "application/json"}


def _http_send(
    http: requests.Session,
    transport: str,
    method: str,
    url: str,
    payload: dict,
    timeout: float,
) -> DeliveryResult:
    """Perform one JSON request and describe the outcome."""
    try:
        response = http.request(method, url, json=payload, headers=JSON_HEADERS, timeout=timeout)
    except (requests.RequestException, TypeError, ValueError) as e:
        return DeliveryResult.failure(transport, str(e))

    if response.status_code >= 400:
        return DeliveryResult.failure(
            transport, f"HTTP {response.status_code}", status_code=response.status_code
        )
    return DeliveryResult.success(transport, status_code=response.status_code)


# ==============================================================================
# Tier 1: Asynchronous request
# ==============================================================================


class AsyncRequestTransport(Transport):
    """
    Fire-and-forget HTTP requests on a small worker pool.

    ``send`` performs the request on the calling thread; ``submit`` hands it
    to the pool and returns a Future immediately.
    """

    def __init__(
        self,
        http: requests.Session | None = None,
        timeout: float = 5.0,
        workers: int = 2,
    ):
        self._http = http or requests.Session()
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="clicktrail-delivery"
        )

    @property
    def name(self) -> str:
        return "request"

    def send(self, method: str, url: str, payload: dict) -> DeliveryResult:
        return _http_send(self._http, self.name, method, url, payload, self._timeout)

    def submit(self, method: str, url: str, payload: dict) -> Future:
        """
        Queue a request on the worker pool.

        Returns:
            Future resolving to a DeliveryResult. If the pool is already shut
            down, the Future is returned resolved with a failure.
        """
        try:
            return self._executor.submit(self.send, method, url, payload)
        except RuntimeError as e:
            future: Future = Future()
            future.set_result(DeliveryResult.failure(self.name, str(e)))
            return future

    def close(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for in-flight requests."""
        self._executor.shutdown(wait=wait)
        self._http.close()


# ==============================================================================
# Tier 2: Beacon
# ==============================================================================


class ThreadedBeacon:
    """
    Background beacon: queues payloads for a non-daemon sender thread.

    Calling the beacon returns True as soon as the payload is queued. The
    sender thread is not a daemon, so queued payloads are still POSTed after
    the agent is torn down, until the queue drains or the process exits.
    """

    def __init__(self, http: requests.Session | None = None, timeout: float = 5.0, maxsize: int = 64):
        self._http = http or requests.Session()
        self._timeout = timeout
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._thread = threading.Thread(
            target=self._drain, name="clicktrail-beacon", daemon=False
        )
        self._thread.start()

    def __call__(self, url: str, data: bytes) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait((url, data))
        except queue.Full:
            return False
        return True

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            url, data = item
            try:
                self._http.post(url, data=data, headers=JSON_HEADERS, timeout=self._timeout)
            except requests.RequestException as e:
                logger.debug("Beacon delivery to %s failed: %s", url, e)
            except Exception:
                logger.exception("Beacon sender error for %s", url)

    def close(self, timeout: float | None = None) -> None:
        """Stop accepting payloads and wait for the queue to drain."""
        if self._closed:
            return
        self._closed = True
        if self._thread.is_alive():
            try:
                self._queue.put(None, timeout=timeout)
            except queue.Full:
                logger.warning("Beacon queue still full on close, %d payloads pending", self._queue.qsize())
            self._thread.join(timeout)
        self._http.close()


class BeaconTransport(Transport):
    """
    Teardown transport backed by a beacon callable.

    Beacons always POST: the endpoint treats a POST with events exactly like
    an append, creating the session if needed.
    """

    def __init__(self, beacon: BeaconFunc | None = None):
        self._beacon = beacon

    @property
    def name(self) -> str:
        return "beacon"

    @property
    def available(self) -> bool:
        return self._beacon is not None

    def send(self, method: str, url: str, payload: dict) -> DeliveryResult:
        if self._beacon is None:
            return DeliveryResult.failure(self.name, "beacon unavailable")
        try:
            data = json.dumps(payload).encode("utf-8")
            queued = bool(self._beacon(url, data))
        except Exception as e:  # the beacon is host-provided code
            return DeliveryResult.failure(self.name, f"beacon raised: {e}")
        if not queued:
            return DeliveryResult.failure(self.name, "beacon refused payload")
        return DeliveryResult.success(self.name)

    def close(self) -> None:
        close = getattr(self._beacon, "close", None)
        if callable(close):
            close()


# ==============================================================================
# Tier 3: Synchronous fallback
# ==============================================================================


class SyncTransport(Transport):
    """Blocking request with a short timeout, used as the last resort at teardown."""

    def __init__(self, http: requests.Session | None = None, timeout: float = 1.0):
        self._http = http or requests.Session()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "sync"

    def send(self, method: str, url: str, payload: dict) -> DeliveryResult:
        return _http_send(self._http, self.name, method, url, payload, self._timeout)

    def close(self) -> None:
        self._http.close()


# ==============================================================================
# Tier selection
# ==============================================================================


class Delivery:
    """
    Chooses the transport for each lifecycle phase.

    Normal operation uses only the asynchronous request tier. Teardown tries
    the beacon first and falls back to the synchronous request.
    """

    def __init__(
        self,
        endpoint: str,
        request: AsyncRequestTransport,
        beacon: BeaconTransport | None = None,
        sync: SyncTransport | None = None,
    ):
        self._endpoint = endpoint
        self._request = request
        self._beacon = beacon or BeaconTransport()
        self._sync = sync

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def request(self, method: str, payload: dict) -> Future:
        """Send asynchronously; returns a Future resolving to a DeliveryResult."""
        return self._request.submit(method, self._endpoint, payload)

    def teardown(self, payload: dict) -> DeliveryResult:
        """
        Deliver a final batch while the page is going away.

        Returns:
            The beacon's result when it accepted the payload, otherwise the
            synchronous fallback's result
        """
        if self._beacon.available:
            result = self._beacon.send("POST", self._endpoint, payload)
            if result.ok:
                return result
            logger.debug("Beacon unavailable for teardown: %s", result.error)

        if self._sync is None:
            return DeliveryResult.failure("sync", "no teardown transport available")
        return self._sync.send("PUT", self._endpoint, payload)

    def close(self, wait: bool = True) -> None:
        """Release all transports."""
        self._request.close(wait=wait)
        self._beacon.close()
        if self._sync is not None:
            self._sync.close()

    @classmethod
    def from_settings(cls, settings: AgentSettings, beacon: BeaconFunc | None = None) -> "Delivery":
        """
        Build the three tiers from agent settings.

        Args:
            settings: Agent settings (endpoint, timeouts, workers)
            beacon: Host beacon. If None, no beacon tier is available and
                    teardown goes straight to the synchronous fallback.
        """
        return cls(
            endpoint=settings.endpoint,
            request=AsyncRequestTransport(timeout=settings.request_timeout, workers=settings.workers),
            beacon=BeaconTransport(beacon),
            sync=SyncTransport(timeout=settings.sync_timeout),
        )
