"""Error types raised by the lucky alarm core.

Hierarchy:
    LuckyAlarmError
    ├── InvalidProfile
    ├── PermissionDenied
    ├── DeliverySchedulingFailed
    └── PersistenceFailure
"""

from __future__ import annotations


class LuckyAlarmError(Exception):
    """Base class for all lucky alarm errors."""


class InvalidProfile(LuckyAlarmError, ValueError):
    """Offset bounds or target time of a profile are not usable."""


class PermissionDenied(LuckyAlarmError):
    """Notification permission is not granted, nothing was scheduled."""


class DeliverySchedulingFailed(LuckyAlarmError):
    """The notification backend rejected the schedule request."""


class PersistenceFailure(LuckyAlarmError):
    """Reading or writing the persisted blob failed."""
