"""Page-side capture agent and delivery transports."""

from clicktrail.agent.capture import (
    CaptureAgent,
    TargetElement,
    classify_device,
    describe_target,
    generate_session_id,
)
from clicktrail.agent.delivery import (
    AsyncRequestTransport,
    BeaconTransport,
    Delivery,
    SyncTransport,
    ThreadedBeacon,
)

__all__ = [
    "AsyncRequestTransport",
    "BeaconTransport",
    "CaptureAgent",
    "Delivery",
    "SyncTransport",
    "TargetElement",
    "ThreadedBeacon",
    "classify_device",
    "describe_target",
    "generate_session_id",
]
