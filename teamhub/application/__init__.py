"""Application services."""

from .container import ServiceContainer, build_container
from .dashboards import DashboardService
from .reports import ReportService
from .teams import TeamService
from .users import UserService
from .widgets import WidgetResolver

__all__ = [
    "DashboardService",
    "ReportService",
    "ServiceContainer",
    "TeamService",
    "UserService",
    "WidgetResolver",
    "build_container",
]
