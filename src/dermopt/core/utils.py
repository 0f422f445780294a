"""Utility functions shared across the package."""

from __future__ import annotations

import re
import uuid


def new_id() -> str:
    """Generate a new record identifier."""
    return uuid.uuid4().hex


def extract_json_from_response(content: str) -> str:
    """Extract JSON string from LLM response content.

    Handles JSON wrapped in markdown code blocks (```json or ```)
    or plain JSON text.

    Args:
        content: LLM response content that may contain JSON.

    Returns:
        Extracted JSON string, stripped of markdown formatting.
    """
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", content)
    return json_match.group(1).strip() if json_match else content.strip()


def parse_number(value: object) -> float | None:
    """Parse a numeric CSV cell, tolerating currency symbols and separators.

    Returns None for blanks. Raises ValueError for non-numeric text.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return None
    return float(text)


def parse_boolean(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("yes", "true", "1", "y")
