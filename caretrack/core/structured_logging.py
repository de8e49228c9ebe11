"""Structured logging helpers (PHI-safe)."""

import logging
from typing import Any

from caretrack.core.config import settings


def build_log_context(
    *,
    user_id: str | None = None,
    patient_id: str | None = None,
    assignment_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict.

    Only identifiers and request metadata are accepted; symptom scores,
    notes and side effects never go into log records.
    """
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if patient_id:
        context["patient_id"] = str(patient_id)
    if assignment_id:
        context["assignment_id"] = str(assignment_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def configure_logging() -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
