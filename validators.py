from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


T = TypeVar("T")

_NETWORK_ID_RE = re.compile(r"^[0-9a-f]{16}$")


@dataclass
class ValidationResult(Generic[T]):
    value: Optional[T]
    error: Optional[str]

    @property
    def is_valid(self) -> bool:
        return self.error is None


def validate_network_id(value: str | None) -> ValidationResult[str]:
    cleaned = (value or "").strip().lower()
    if not cleaned:
        return ValidationResult(None, "Network id must be provided")
    if not _NETWORK_ID_RE.match(cleaned):
        return ValidationResult(None, f"Invalid network id '{cleaned}' (expected 16 hex characters)")
    return ValidationResult(cleaned, None)


def validate_binding_key(value: object, *, reserved: frozenset[str] = frozenset()) -> ValidationResult[str]:
    if not isinstance(value, str) or len(value) != 1:
        return ValidationResult(None, f"Binding key {value!r} must be a single character")
    if not value.isprintable() or value.isspace():
        return ValidationResult(None, f"Binding key {value!r} must be printable")
    if value in reserved:
        return ValidationResult(None, f"Binding key {value!r} collides with a built-in action")
    return ValidationResult(value, None)


def validate_float(
    value: object,
    *,
    default: float,
    name: str = "value",
    min_value: Optional[float] = None,
) -> ValidationResult[float]:
    if value is None:
        return ValidationResult(default, None)
    if isinstance(value, bool):
        return ValidationResult(None, f"{name} must be a number")
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ValidationResult(None, f"{name} must be a number")
    if min_value is not None and parsed < min_value:
        return ValidationResult(None, f"{name} must be >= {min_value}")
    return ValidationResult(parsed, None)
