"""
Core enumerations used throughout the system.

These fundamental enums are used by multiple components and should be
imported from here (single source of truth).
"""

from enum import Enum


class ContainerState(Enum):
    """
    Browser container state.

    Values:
        STOPPED: No browser running (not started yet, or shut down)
        RUNNING: Browser and window are usable
        RECOVERING: Browser or window was lost and is being recreated
        FAILED: Browser could not be relaunched; every session is affected
    """
    STOPPED = "stopped"
    RUNNING = "running"
    RECOVERING = "recovering"
    FAILED = "failed"


class ContainerLossKind(Enum):
    """What part of the container was lost."""
    WINDOW_CLOSED = "window_closed"
    BROWSER_DISCONNECTED = "browser_disconnected"
