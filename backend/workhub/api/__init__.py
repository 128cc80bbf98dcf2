"""API router package."""

from fastapi import APIRouter

from workhub.api.v1 import (
    activities,
    applications,
    auth,
    clients,
    health,
    notifications,
    products,
    projects,
    stats,
    subscriptions,
    tasks,
    team_members,
    time_entries,
    users,
)

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(team_members.router, prefix="/team-members", tags=["Team Members"])
router.include_router(clients.router, prefix="/clients", tags=["Clients"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(applications.router, prefix="/applications", tags=["Applications"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(time_entries.router, prefix="/time-entries", tags=["Time Entries"])
router.include_router(activities.router, prefix="/activities", tags=["Activities"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(products.router, prefix="/products", tags=["Products"])
router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
router.include_router(stats.router, tags=["Dashboard"])
