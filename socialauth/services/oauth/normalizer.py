"""Map raw provider profiles onto ``CanonicalProfile``.

Each provider contributes a mapping table: canonical field name to either a
dotted path into the raw JSON, a tuple of paths tried in order, or a
resolver ``callable(raw) -> value``. Resolution never raises; anything
missing or of the wrong shape becomes ``""`` (``False`` for ``verified``).
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Union

from socialauth.models.schemas import CanonicalProfile

Resolver = Callable[[Mapping[str, Any]], Any]
FieldSpec = Union[str, tuple[str, ...], Resolver]
ProfileMapping = Mapping[str, FieldSpec]

TEXT_FIELDS = ("email", "first_name", "last_name", "display_name", "picture", "locale")


def lookup(raw: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts and lists (numeric parts index lists)."""
    current = raw
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def first_of(*paths: str) -> Resolver:
    """Resolver returning the first non-empty value among ``paths``."""

    def resolve(raw: Mapping[str, Any]) -> Any:
        for path in paths:
            value = lookup(raw, path)
            if value not in (None, ""):
                return value
        return None

    return resolve


def name_part(path: str, part: str) -> Resolver:
    """Split a full name on the first space: ``first`` or the ``rest``."""

    def resolve(raw: Mapping[str, Any]) -> str:
        full = lookup(raw, path)
        if not isinstance(full, str) or not full.strip():
            return ""
        words = full.split()
        if part == "first":
            return words[0]
        return " ".join(words[1:])

    return resolve


def _resolve(raw: Mapping[str, Any], field_spec: FieldSpec | None) -> Any:
    if field_spec is None:
        return None
    if isinstance(field_spec, str):
        return lookup(raw, field_spec)
    if isinstance(field_spec, tuple):
        return first_of(*field_spec)(raw)
    return field_spec(raw)


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def normalize_profile(
    provider: str,
    raw: Mapping[str, Any] | None,
    mapping: ProfileMapping,
) -> CanonicalProfile:
    raw = raw if isinstance(raw, Mapping) else {}
    values: dict[str, Any] = {
        field: _as_text(_resolve(raw, mapping.get(field))) for field in TEXT_FIELDS
    }
    return CanonicalProfile(
        id=_as_text(_resolve(raw, mapping.get("id", "id"))),
        provider=provider,
        verified=_as_bool(_resolve(raw, mapping.get("verified"))),
        metadata={"raw": dict(raw)},
        **values,
    )
