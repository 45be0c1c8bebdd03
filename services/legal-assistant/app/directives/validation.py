from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple


class RequiredField(NamedTuple):
    key: str
    label: str


def first_missing(data: Mapping[str, Any], required: Iterable[RequiredField]) -> str | None:
    """Return the label of the first required field that is absent or blank."""
    for field in required:
        if _is_missing(data.get(field.key)):
            return field.label
    return None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False
