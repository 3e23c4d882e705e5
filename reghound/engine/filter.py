# Wildcard filter for registry key names.
#
# PowerShell-style wildcards: `*` matches any run of characters, `?` exactly
# one, `[abc]` / `[a-z]` one character from a set. Matching is whole-name and
# case-insensitive, like registry lookups themselves. A malformed pattern
# never raises out of matches(); it simply matches nothing.

import re
from typing import Dict, Optional

from ..exceptions import MalformedPatternError
from ..utils.logging import debug

MATCH_ALL = "*"

# pattern text -> compiled regex; filters are reused for every key on every host
_pattern_cache: Dict[str, "re.Pattern[str]"] = {}


def compile_pattern(pattern: Optional[str]) -> "re.Pattern[str]":
    """
    Compile a wildcard pattern into a case-insensitive regex.

    Raises:
        MalformedPatternError: Unterminated or empty character set
    """
    if not pattern:
        pattern = MATCH_ALL
    if pattern in _pattern_cache:
        return _pattern_cache[pattern]

    out = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            # Collapse runs of '*' so "a**b" doesn't backtrack twice
            while i + 1 < n and pattern[i + 1] == "*":
                i += 1
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                raise MalformedPatternError(f"Unterminated '[' in pattern {pattern!r}")
            body = pattern[i + 1:end]
            if not body:
                raise MalformedPatternError(f"Empty character set in pattern {pattern!r}")
            if len(body) == 3 and body[1] == "-" and body[0] > body[2]:
                raise MalformedPatternError(f"Invalid range [{body}] in pattern {pattern!r}")
            out.append("[" + _escape_set(body) + "]")
            i = end
        else:
            out.append(re.escape(c))
        i += 1

    try:
        regex = re.compile("".join(out) + r"\Z", re.IGNORECASE | re.DOTALL)
    except re.error as e:
        raise MalformedPatternError(f"Invalid pattern {pattern!r}: {e}") from e
    _pattern_cache[pattern] = regex
    return regex


def _escape_set(body: str) -> str:
    # Keep '-' ranges, escape everything regex would otherwise interpret
    parts = []
    for idx, ch in enumerate(body):
        if ch == "-" and 0 < idx < len(body) - 1:
            parts.append("-")
        elif ch in "\\^[]-":
            parts.append("\\" + ch)
        else:
            parts.append(ch)
    return "".join(parts)


def matches(name: str, pattern: Optional[str]) -> bool:
    """Return True if `name` matches the wildcard `pattern`."""
    try:
        regex = compile_pattern(pattern)
    except MalformedPatternError as e:
        debug(f"Ignoring malformed filter: {e}")
        return False
    return regex.match(name) is not None
