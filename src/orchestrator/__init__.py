"""Orchestrator - watch session, change monitor and control API."""

from .config import Settings
from .main import app
from .monitor import ChangeMonitor
from .session import Notice, NoticeLevel, NoticeLog, WatchSession

__all__ = [
    "ChangeMonitor",
    "Notice",
    "NoticeLevel",
    "NoticeLog",
    "Settings",
    "WatchSession",
    "app",
]
