# src/rounds/validator.py — v1
"""Check file references in round payloads against the scanned files.

Paths named by the model that do not exist in the analyzed codebase are
counted as dropped claims; the orchestrator retries a round once when
too many of its references are unknown.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from codebrief.core.models import ClaimCheck

# Share of unknown file references above which a round is retried.
MAX_DROP_RATE = 0.3

_PATH_RE = re.compile(
    r"""(?:^|[\s"',\[(])"""
    r"([a-zA-Z0-9_./-]+\.(?:ts|js|tsx|jsx|py|rs|go|json|yml|yaml|toml|md|css|html|sh|Dockerfile))\b"
)


def extract_file_claims(data: dict[str, Any]) -> list[str]:
    """File-path-like strings mentioned anywhere in a payload, in first-seen order.

    Single-segment names (``setup.py``) are ignored; only paths with a
    directory part count as claims.
    """
    text = json.dumps(data, ensure_ascii=False)
    claims: dict[str, None] = {}
    for match in _PATH_RE.finditer(text):
        candidate = match.group(1)
        if candidate.startswith("./"):
            candidate = candidate[2:]
        if "/" in candidate:
            claims.setdefault(candidate, None)
    return list(claims)


def validate_file_claims(data: dict[str, Any], known_paths: Iterable[str]) -> ClaimCheck:
    """Count the payload's file references that exist among known_paths.

    With no known paths there is nothing to check against and the result
    is empty.
    """
    known = set(known_paths)
    if not known:
        return ClaimCheck()
    claims = extract_file_claims(data)
    dropped = [path for path in claims if path not in known]
    return ClaimCheck(validated=len(claims) - len(dropped), dropped=dropped, total=len(claims))
