# src/cache/vcs_ignore.py — v1
"""Keep the cache directory out of version control."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def ignore_pattern_for(location: Path, project_root: Path) -> str | None:
    """Return the ignore rule covering location, relative to project_root.

    The rule targets the ``cache`` directory level (``.codebrief/cache``
    for the default ``.codebrief/cache/rounds``). Locations outside the
    project root need no rule.
    """
    try:
        relative = location.resolve().relative_to(project_root.resolve())
    except ValueError:
        return None
    parts = relative.parts
    if not parts:
        return None
    if "cache" in parts:
        parts = parts[: parts.index("cache") + 1]
    return "/".join(parts)


def is_covered(content: str, pattern: str) -> bool:
    """Check whether an existing .gitignore already covers pattern."""
    lines = {line.strip().rstrip("/").lstrip("/") for line in content.splitlines()}
    top = pattern.split("/", 1)[0]
    return pattern in lines or top in lines


def ensure_gitignored(project_root: Path, pattern: str) -> bool:
    """Append pattern to <project_root>/.gitignore unless already covered.

    Bytes that are not UTF-8 are carried through unchanged.

    Returns:
        True if the file was modified.

    Raises:
        OSError: If .gitignore exists but cannot be read or written.
    """
    gitignore = project_root / ".gitignore"
    content = ""
    if gitignore.exists():
        content = gitignore.read_text(encoding="utf-8", errors="surrogateescape")

    if is_covered(content, pattern):
        return False

    prefix = "\n" if content and not content.endswith("\n") else ""
    gitignore.write_text(
        f"{content}{prefix}{pattern}\n", encoding="utf-8", errors="surrogateescape"
    )
    logger.info("Added %s to %s", pattern, gitignore)
    return True
