"""Project scanning and manifest building utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .config import ConfigError, load_config
from .models import ProjectManifest

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "dist",
    "coverage",
    ".idea",
    ".vscode",
}

_SOURCE_SUFFIX = ".ts"
_DECLARATION_SUFFIX = ".d.ts"
_DEFAULT_MODULE_SUFFIX = ".module.ts"


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .nestd2.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if self.directory_only and target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def _build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = _build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _build_exclude_rules(patterns: Sequence[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for pattern in patterns:
        rule = _build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, start: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(start):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        filtered_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            filtered_dirs.append(name)
        dirnames[:] = filtered_dirs

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename


class RepoScanner:
    """Walks a NestJS project's source tree to produce a manifest.

    Files ending in the module suffix are module files; every other ``.ts``
    file (declaration files excluded) is a class source. Paths are sorted so
    repeated scans of an unchanged tree yield the same manifest.

    Without explicit ``exclude_paths`` the project's own ``.nestd2.yml`` is read
    for them.
    """

    def __init__(
        self,
        source_dir: str = "src",
        module_suffix: str = _DEFAULT_MODULE_SUFFIX,
        exclude_paths: Optional[Sequence[str]] = None,
    ) -> None:
        self.source_dir = source_dir
        self.module_suffix = module_suffix
        self.exclude_paths = list(exclude_paths) if exclude_paths is not None else None

    def scan(self, root: str) -> ProjectManifest:
        """Return a manifest listing module files and other source files."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        rules = _parse_gitignore(root_path / ".gitignore")
        if self.exclude_paths is None:
            rules.extend(_load_config_excludes(root_path))
        else:
            rules.extend(_build_exclude_rules(self.exclude_paths))

        module_files: List[str] = []
        source_files: List[str] = []
        start = root_path / self.source_dir if self.source_dir else root_path
        if start.is_dir():
            for path in _iter_files(root_path, start, rules):
                name = path.name
                if not name.endswith(_SOURCE_SUFFIX) or name.endswith(_DECLARATION_SUFFIX):
                    continue
                rel_path = path.relative_to(root_path).as_posix()
                if name.endswith(self.module_suffix):
                    module_files.append(rel_path)
                else:
                    source_files.append(rel_path)

        return ProjectManifest(
            root=str(root_path),
            module_files=module_files,
            source_files=source_files,
        )


def _load_config_excludes(root: Path) -> List[IgnoreRule]:
    try:
        config = load_config(root)
    except ConfigError:
        return []
    return _build_exclude_rules(config.exclude_paths)


__all__ = ["IgnoreRule", "RepoScanner"]
