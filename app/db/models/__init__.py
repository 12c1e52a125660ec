# Models package (re-export feature modules for stable imports)
from .notifications.notification import Notification

__all__ = [
    "Notification",
]
