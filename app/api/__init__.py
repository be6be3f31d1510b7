"""API package: provides FastAPI dependencies and route definitions for the application."""

from .dependencies import ServiceContainer, build_container, get_job_service  # noqa: F401
from .routes import router  # noqa: F401
