"""
Notifications Module.

Typed outbound notifications and the post-commit handlers that send them.
"""

from fop_modules.notifications.handlers import (
    NotificationHandlers,
    register_default_handlers,
)
from fop_modules.notifications.sender import (
    LoggingNotificationSender,
    NotificationSender,
    RecordingNotificationSender,
)

__all__ = [
    "LoggingNotificationSender",
    "NotificationHandlers",
    "NotificationSender",
    "RecordingNotificationSender",
    "register_default_handlers",
]
