"""
Clicktrail - click and session analytics ingestion.

Capture agent, HTTP ingestion service, session store adapters and the
reconstruction helpers behind the timeline and heatmap views.
"""

__version__ = "0.1.0"
