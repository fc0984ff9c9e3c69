# ==============================================================================
# Agent Commands
# ==============================================================================
"""
Drives a capture agent against a running endpoint.

Useful for smoke-testing a deployment: the simulated page loads, receives
a few clicks on random elements, then unloads through the teardown path.
"""

import random
import time
from typing import Annotated, Optional

import typer

from clicktrail.cli.shared import C, I
from clicktrail.utils.config import get_settings

DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0"
MOBILE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) AppleWebKit/605.1.15 Mobile"

DOC_WIDTH = 1280
DOC_HEIGHT = 2400


def _random_target():
    from clicktrail.agent.capture import TargetElement

    body = TargetElement(tag_name="BODY")
    main = TargetElement(tag_name="MAIN", class_name="content", parent=body)
    if random.random() < 0.3:
        return TargetElement(tag_name="BUTTON", id=f"cta-{random.randint(1, 3)}", parent=main)
    section = TargetElement(tag_name="SECTION", class_name="card featured", parent=main)
    return TargetElement(tag_name="A", class_name="link", parent=section)


def agent_simulate(
    clicks: Annotated[int, typer.Option("--clicks", "-c", help="Number of clicks")] = 5,
    mobile: Annotated[bool, typer.Option("--mobile", help="Use a mobile user agent")] = False,
    endpoint: Annotated[
        Optional[str], typer.Option("--endpoint", "-e", help="Override AGENT_ENDPOINT")
    ] = None,
    beacon: Annotated[
        bool, typer.Option("--beacon/--no-beacon", help="Deliver the unload event by beacon")
    ] = True,
    delay: Annotated[float, typer.Option("--delay", help="Seconds between clicks")] = 0.2,
) -> None:
    """Simulate a page visit: load, clicks, unload.

    Examples:
        clicktrail agent simulate
        clicktrail agent simulate --clicks 20 --mobile
        clicktrail agent simulate --no-beacon    # Exercise the sync fallback
    """
    from clicktrail.agent.capture import CaptureAgent
    from clicktrail.agent.delivery import ThreadedBeacon

    settings = get_settings()
    if endpoint:
        settings = settings.model_copy(
            update={"agent": settings.agent.model_copy(update={"endpoint": endpoint})}
        )

    agent = CaptureAgent.from_settings(
        settings,
        user_agent=MOBILE_UA if mobile else DESKTOP_UA,
        beacon=ThreadedBeacon(timeout=settings.agent.request_timeout) if beacon else None,
    )

    print()
    print(f"  Session:   {C.WHITE}{agent.session_id}{C.RESET}")
    print(f"  Device:    {C.WHITE}{agent.device}{C.RESET}")
    print(f"  Endpoint:  {C.WHITE}{settings.agent.endpoint}{C.RESET}")
    print()

    try:
        agent.on_load()
        for _ in range(clicks):
            x = random.randint(0, DOC_WIDTH)
            y = random.randint(0, DOC_HEIGHT)
            agent.on_click(x, y, _random_target(), doc_width=DOC_WIDTH, doc_height=DOC_HEIGHT)
            time.sleep(delay)

        result = agent.on_unload()
    finally:
        agent.close()

    if result.ok:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Sent load, {clicks} clicks, unload via {result.transport}{C.RESET}")
    else:
        print(f"{C.BRIGHT_YELLOW}{I.WARN} Unload delivery failed: {result.error}{C.RESET}")
    print()
