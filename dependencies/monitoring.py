from fastapi import Request

from config import Settings, get_settings
from monitoring.handle import MonitoringHandle


def get_monitoring(request: Request) -> MonitoringHandle:
    handle = getattr(request.app.state, "monitoring", None)
    if handle is None:
        return MonitoringHandle.disabled("not configured on app")
    return handle


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()
