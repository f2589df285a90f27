"""API routers for the organization attendance service."""

from app.routers import attendance, events, financial, members, whoami  # noqa: F401
