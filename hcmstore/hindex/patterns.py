"""Scope glob compilation.

``*`` matches exactly one non-empty path segment (no ``/``); ``**`` matches
any run of characters including ``/`` (zero or more segments).  Every other
character is literal.  Patterns are anchored at both ends and applied to
root-relative POSIX paths.
"""

from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a scope glob into an anchored regular expression."""
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]+")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def matches(path: str, pattern: str) -> bool:
    return compile_pattern(pattern).match(path) is not None


def search_roots(include: list[str]) -> list[str]:
    """Top-level directories to enumerate for a set of include patterns.

    The first segment of every pattern is a root unless it contains a
    wildcard.  Order follows first appearance.
    """
    roots: list[str] = []
    for pattern in include:
        first = pattern.split("/", 1)[0]
        if first and "*" not in first and first not in roots:
            roots.append(first)
    return roots
