"""Recover module metadata from a previously generated component diagram.

Regenerating a diagram must not throw away the technology and description
a user entered last time. The previous ``component-diagram.d2`` is read back
line by line and the values are offered as defaults for the next run.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from .analyzers.naming import sanitize_identifier
from .diagrams.component import METADATA_MARKER
from .logging import get_logger
from .models import ModuleMetadata

logger = get_logger("reconcile")

_TECHNOLOGY = re.compile(r"\[Component:\s*([^\]]+)\]")
_HEADING = re.compile(r"^#{1,6}\s*(.+)$")
_SEPARATOR = re.compile(r"^-{3,}$")
_ATTRIBUTE = re.compile(r"^(class|shape|style\.[\w-]+):")
_LABEL_CLOSE = re.compile(r"^\|+\s*\{$")


class LineKind(Enum):
    CONTAINER_OPEN = "container_open"
    MODULE_OPEN = "module_open"
    LABEL_CLOSE = "label_close"
    BLOCK_OPEN = "block_open"
    BLOCK_CLOSE = "block_close"
    HEADING = "heading"
    TECHNOLOGY = "technology"
    SEPARATOR = "separator"
    ATTRIBUTE = "attribute"
    METADATA = "metadata"
    TEXT = "text"
    BLANK = "blank"


class _State(Enum):
    OUTSIDE = "outside"
    IN_CONTAINER = "in_container"
    IN_MODULE_BLOCK = "in_module_block"


def classify_line(line: str, container: str) -> Tuple[LineKind, str]:
    """Tokenize one stripped diagram line relative to the system container identifier."""
    if not line:
        return LineKind.BLANK, ""
    if line.startswith(METADATA_MARKER.strip()):
        return LineKind.METADATA, line[len(METADATA_MARKER.strip()) :].strip()
    if container:
        if re.match(rf"^{re.escape(container)}:\s*\|+md$", line):
            return LineKind.CONTAINER_OPEN, container
        module = re.match(rf"^(?:{re.escape(container)}\.)?([A-Za-z0-9_]+):\s*\|+md$", line)
        if module:
            return LineKind.MODULE_OPEN, module.group(1)
    if _LABEL_CLOSE.match(line):
        return LineKind.LABEL_CLOSE, ""
    if line == "}":
        return LineKind.BLOCK_CLOSE, ""
    if line.endswith("{"):
        return LineKind.BLOCK_OPEN, ""
    technology = _TECHNOLOGY.search(line)
    if technology:
        return LineKind.TECHNOLOGY, technology.group(1).strip()
    heading = _HEADING.match(line)
    if heading:
        return LineKind.HEADING, heading.group(1).strip()
    if _SEPARATOR.match(line):
        return LineKind.SEPARATOR, ""
    if _ATTRIBUTE.match(line):
        return LineKind.ATTRIBUTE, ""
    return LineKind.TEXT, line


class MetadataReconciler:
    """State machine that scrapes technology and description per module."""

    def __init__(self, container_name: str) -> None:
        title = container_name.strip()
        self._container = sanitize_identifier(title) if title else ""

    def parse(self, text: str) -> Dict[str, ModuleMetadata]:
        scraped: Dict[str, ModuleMetadata] = {}
        structured: Dict[str, ModuleMetadata] = {}

        state = _State.OUTSIDE
        depth = 0
        current: Optional[str] = None

        for raw in text.splitlines():
            kind, value = classify_line(raw.strip(), self._container)

            if kind is LineKind.METADATA:
                structured.update(_decode_metadata(value))
                continue

            if state is _State.OUTSIDE:
                if kind is LineKind.CONTAINER_OPEN:
                    state = _State.IN_CONTAINER
                    depth = 0
                continue

            if state is _State.IN_MODULE_BLOCK:
                if kind is LineKind.LABEL_CLOSE:
                    state = _State.IN_CONTAINER
                    depth += 1
                elif kind is LineKind.HEADING:
                    current = value
                elif current is not None:
                    entry = scraped.setdefault(current, ModuleMetadata())
                    if kind is LineKind.TECHNOLOGY and not entry.technology:
                        entry.technology = value
                    elif kind is LineKind.TEXT and not entry.description:
                        entry.description = value
                continue

            # a module sharing the container identifier opens like the container
            if kind in (LineKind.MODULE_OPEN, LineKind.CONTAINER_OPEN):
                state = _State.IN_MODULE_BLOCK
                current = value
            elif kind in (LineKind.LABEL_CLOSE, LineKind.BLOCK_OPEN):
                depth += 1
            elif kind is LineKind.BLOCK_CLOSE:
                depth -= 1
                if depth <= 0:
                    state = _State.OUTSIDE
                    current = None

        result = {name: meta for name, meta in scraped.items() if not meta.is_empty()}
        result.update(structured)
        return result


def parse_existing_diagram(path: Path, container_name: str) -> Dict[str, ModuleMetadata]:
    """Return ``module name -> metadata`` from a previous diagram; empty when unavailable."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read existing diagram %s: %s", path, exc)
        return {}
    metadata = MetadataReconciler(container_name).parse(text)
    if metadata:
        logger.info("Found existing component diagram with metadata for %d modules", len(metadata))
    return metadata


def _decode_metadata(payload: str) -> Dict[str, ModuleMetadata]:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        logger.warning("Ignoring unreadable metadata block in existing diagram: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring metadata block that is not a mapping")
        return {}

    decoded: Dict[str, ModuleMetadata] = {}
    for name, entry in data.items():
        if not isinstance(entry, dict):
            continue
        technology = entry.get("technology")
        description = entry.get("description")
        decoded[str(name)] = ModuleMetadata(
            technology=technology if isinstance(technology, str) else "",
            description=description if isinstance(description, str) else "",
        )
    return decoded


__all__ = [
    "LineKind",
    "MetadataReconciler",
    "classify_line",
    "parse_existing_diagram",
]
