from .import_service import ImportService
from .restore_service import RestoreService
from .notification_listener import NotificationListener
from .watch_service import WatchService

__all__ = ["ImportService", "RestoreService", "NotificationListener", "WatchService"]
