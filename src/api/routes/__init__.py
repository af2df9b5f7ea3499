from fastapi import FastAPI

from . import attendance, cohorts, dashboard, health, modules, participants, scores


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the FastAPI application."""
    app.include_router(health.router)
    app.include_router(attendance.router)
    app.include_router(scores.router)
    app.include_router(modules.router)
    app.include_router(participants.router)
    app.include_router(dashboard.router)
    app.include_router(cohorts.router)
