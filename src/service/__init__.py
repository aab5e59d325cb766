from .config import DashboardConfig, configure_logging
from .dashboard import DashboardSession

__all__ = [
    "DashboardConfig",
    "DashboardSession",
    "configure_logging",
]
