"""Name sanitization between raw API identifiers and GraphQL-safe names.

GraphQL names must match ``[_A-Za-z][_0-9A-Za-z]*``. Every name that leaves
the translation (type names, field names, argument names, enum values) goes
through :func:`sanitize`. Names that must be mapped back to the REST API at
call time (payload keys) are registered via :func:`sanitize_and_store` in a
name map owned by one translation run.
"""

import logging
import re
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
_UNSAFE_ALL_CAPS = re.compile(r"[^a-zA-Z0-9_]")
_LEADING_DIGIT = re.compile(r"^[0-9]")


class CaseStyle(str, Enum):
    """Case conventions used for the different kinds of GraphQL names."""

    PASCAL_CASE = "PascalCase"  # type names
    CAMEL_CASE = "camelCase"  # field and argument names
    ALL_CAPS = "ALL_CAPS"  # enum values


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def uncapitalize(text: str) -> str:
    return text[:1].lower() + text[1:]


def sanitize(raw: str, case_style: CaseStyle = CaseStyle.CAMEL_CASE) -> str:
    """Strip GraphQL-unsafe characters from ``raw`` and apply ``case_style``.

    Word boundaries are the removed characters: ``user-id`` becomes ``userId``
    in camelCase, ``UserId`` in PascalCase and ``USER_ID`` in ALL_CAPS. The
    result is prefixed with ``_`` if it would be empty or start with a digit.
    """
    raw = str(raw)
    if case_style is CaseStyle.ALL_CAPS:
        sanitized = "_".join(_UNSAFE_ALL_CAPS.split(raw)).upper()
    else:
        first, *rest = _UNSAFE.split(raw)
        sanitized = first + "".join(capitalize(part) for part in rest)
        if case_style is CaseStyle.PASCAL_CASE:
            sanitized = capitalize(sanitized)
        else:
            sanitized = uncapitalize(sanitized)

    if sanitized == "" or _LEADING_DIGIT.match(sanitized):
        sanitized = "_" + sanitized
    return sanitized


def sanitize_and_store(
    raw: str,
    name_map: dict[str, str],
    case_style: CaseStyle = CaseStyle.CAMEL_CASE,
) -> str:
    """Sanitize ``raw`` and remember the sanitized-to-raw mapping.

    The first raw name to claim a sanitized name keeps it. A different raw
    name sanitizing to the same key is logged and not stored.
    """
    clean = sanitize(raw, case_style)
    claimed = name_map.get(clean)
    if claimed is None:
        name_map[clean] = raw
    elif claimed != raw:
        logger.warning(
            "'%s' and '%s' both sanitize to '%s'; desanitizing keeps '%s'",
            raw, claimed, clean, claimed,
        )
    return clean


def desanitize(name_map: dict[str, str], obj: Any) -> Any:
    """Recursively rewrite object keys back to their raw names."""
    if isinstance(obj, list):
        return [desanitize(name_map, item) for item in obj]
    if isinstance(obj, dict):
        return {name_map.get(key, key): desanitize(name_map, value) for key, value in obj.items()}
    return obj


def sanitize_keys(obj: Any, case_style: CaseStyle = CaseStyle.CAMEL_CASE) -> Any:
    """Recursively sanitize the keys of data received from a REST API."""
    if isinstance(obj, list):
        return [sanitize_keys(item, case_style) for item in obj]
    if isinstance(obj, dict):
        return {sanitize(key, case_style): sanitize_keys(value, case_style) for key, value in obj.items()}
    return obj
