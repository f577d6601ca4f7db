"""Story analytics aggregation engine following Clean Architecture layering."""

from .core.container import DIContainer
from .core.reports import ReportService
from .core.router import ReportRouter

__all__ = [
    "DIContainer",
    "ReportService",
    "ReportRouter",
    "domain",
    "analytics",
    "core",
    "utils",
]
