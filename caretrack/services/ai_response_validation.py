"""Helpers for pulling a JSON object out of model output and validating it."""

from __future__ import annotations

import json
import logging
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FENCED_JSON = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n\s*```")
BARE_OBJECT = re.compile(r"\{[\s\S]*\}")


def _candidates(text: str) -> list[str]:
    """Fenced block first, then the outermost {...}, then the raw text."""
    found = []
    fenced = FENCED_JSON.search(text)
    if fenced:
        found.append(fenced.group(1))
    bare = BARE_OBJECT.search(text)
    if bare:
        found.append(bare.group(0))
    found.append(text.strip())
    return found


def parse_json_object(text: str) -> dict | None:
    for candidate in _candidates(text):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    logger.warning("Failed to parse JSON object from model output (%s chars)", len(text))
    return None


def validate_model(model_cls: type[ModelT], data: dict | None) -> ModelT | None:
    if data is None:
        return None
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        logger.warning("Model validation failed: %s error(s)", exc.error_count())
        return None
