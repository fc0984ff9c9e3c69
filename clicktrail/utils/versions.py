# ==============================================================================
# Version Utilities
# ==============================================================================
"""
Utilities for retrieving package versions.
"""

from importlib.metadata import PackageNotFoundError, version


def get_clicktrail_version() -> str:
    """
    Get the clicktrail package version.

    Returns:
        Version string (e.g., "0.1.0")
    """
    try:
        return version("clicktrail")
    except PackageNotFoundError:
        return "0.1.0"
