"""SQLAlchemy models package."""

from workhub.models.client import Client
from workhub.models.user import User, UserClientPermission, UserProjectPermission
from workhub.models.project import (
    Application,
    Comment,
    Project,
    ProjectApplication,
    Task,
    TimeEntry,
)
from workhub.models.activity import Activity, Notification
from workhub.models.registry import (
    ElectronicsDetail,
    GadgetDetail,
    JewelleryDetail,
    Product,
    Subscription,
    VehicleDetail,
)

__all__ = [
    # Clients
    "Client",
    # Principals
    "User",
    "UserClientPermission",
    "UserProjectPermission",
    # Projects
    "Project",
    "Application",
    "ProjectApplication",
    "Task",
    "Comment",
    "TimeEntry",
    # Activity
    "Activity",
    "Notification",
    # Registry
    "Product",
    "ElectronicsDetail",
    "VehicleDetail",
    "JewelleryDetail",
    "GadgetDetail",
    "Subscription",
]
