"""Presence-tracking base for resource records, plus value helpers.

A record field that is ``None`` and was never assigned is *absent*: it is not
decoded from the response and it is not sent back. Assigning a value,
including ``""``, ``0`` or ``False``, makes the field *present*. Pydantic
tracks this in ``model_fields_set``, which is what the payload dumps key on.
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class WaveModel(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    def is_set(self, name: str) -> bool:
        """Whether ``name`` was present in the decoded JSON or assigned since."""
        return name in self.model_fields_set

    def partial_payload(self) -> Dict[str, Any]:
        """JSON payload for PATCH: only fields that are present."""
        return self.model_dump(mode="json", exclude_unset=True)

    def complete_payload(self) -> Dict[str, Any]:
        """JSON payload for POST/PUT: every field carrying a value."""
        return self.model_dump(mode="json", exclude_none=True)


def string(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return str(value)


def integer(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected int, got {type(value).__name__}")
    return int(value)


def boolean(value: bool) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected bool, got {type(value).__name__}")
    return bool(value)


def float64(value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected float, got {type(value).__name__}")
    return float(value)
