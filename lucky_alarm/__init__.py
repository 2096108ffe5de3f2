"""Lucky alarm: wake up a random few minutes before your target time."""

from .controller import AlarmController
from .errors import (
    DeliverySchedulingFailed,
    InvalidProfile,
    LuckyAlarmError,
    PermissionDenied,
    PersistenceFailure,
)
from .models import AlarmInstance, AppData, HistoryRecord, Profile, Settings, TargetTime
from .scheduler import schedule
from .stats import record_firing, weekly_saved
