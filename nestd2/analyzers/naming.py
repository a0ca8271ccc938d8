"""Type-name normalization and D2 identifier helpers."""

from __future__ import annotations

import re

_IMPORT_WRAPPER = re.compile(r"import\([^)]*\)\.")
_INNERMOST_GENERIC = re.compile(r"<[^<>]*>")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]")
_PATH_SEPARATOR = re.compile(r"[/\\]")

_NULLISH = {"null", "undefined"}

_PRIMITIVES = frozenset(
    {
        "string",
        "number",
        "boolean",
        "any",
        "unknown",
        "void",
        "never",
        "undefined",
        "null",
        "object",
        "symbol",
        "bigint",
    }
)


def normalize_type_name(raw: str) -> str:
    """Reduce a TypeScript type expression to the bare entity name it refers to.

    ``import("./user").User[]`` becomes ``User``, ``Repository<User>`` becomes
    ``Repository`` and ``Logger | undefined`` becomes ``Logger``.
    """
    cleaned = _IMPORT_WRAPPER.sub("", raw)
    cleaned = cleaned.replace("[]", "")

    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _INNERMOST_GENERIC.sub("", cleaned)

    if "|" in cleaned:
        members = [member.strip() for member in cleaned.split("|")]
        members = [member for member in members if member] or [""]
        cleaned = next((member for member in members if member not in _NULLISH), members[0])

    if _PATH_SEPARATOR.search(cleaned):
        cleaned = _PATH_SEPARATOR.split(cleaned)[-1]
        cleaned = cleaned.replace('"', "").replace("'", "")

    return cleaned.strip()


def sanitize_identifier(name: str) -> str:
    """Return a valid D2 identifier for ``name``."""
    sanitized = _NON_IDENTIFIER.sub("_", name)
    if not sanitized:
        return "_"
    # D2 identifiers can't start with a digit
    if sanitized[0] in "0123456789":
        sanitized = f"_{sanitized}"
    return sanitized


def is_primitive_or_builtin(name: str) -> bool:
    """True for scalar and builtin type names that are never injectable."""
    return normalize_type_name(name).lower() in _PRIMITIVES


def escape_brackets(text: str) -> str:
    return text.replace("[", "\\[").replace("]", "\\]")


def unescape_brackets(text: str) -> str:
    return text.replace("\\[", "[").replace("\\]", "]")


__all__ = [
    "escape_brackets",
    "is_primitive_or_builtin",
    "normalize_type_name",
    "sanitize_identifier",
    "unescape_brackets",
]
