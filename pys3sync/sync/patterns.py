"""Include/exclude glob matching for sync scans.

Patterns are matched against forward-slash relative paths:

- ``*``, ``?`` and ``[...]`` behave like :mod:`fnmatch` within one segment
- ``**`` matches any number of path segments
- a pattern ending in ``/`` matches everything below that directory
- a pattern without ``/`` is also tried against the basename, so
  ``*.tmp`` matches ``logs/a.tmp``
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class PatternError:
    """A pattern that could not be compiled."""

    pattern: str
    index: int
    reason: str

    def __str__(self) -> str:
        return f"invalid pattern at index {self.index} '{self.pattern}': {self.reason}"


def _translate_segment(segment: str) -> str:
    """Translate one glob fragment (no ``**``) to a regex fragment."""
    out: list[str] = []
    i = 0
    n = len(segment)
    while i < n:
        ch = segment[i]
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = segment.find("]", i + 1)
            if end == -1:
                raise ValueError("unterminated character class")
            body = segment[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a glob pattern to an anchored regular expression.

    Raises:
        ValueError: If the pattern is malformed
    """
    parts = pattern.split("**")
    regex_parts = []
    for index, part in enumerate(parts):
        if index > 0:
            # "**/" may match zero directories
            if part.startswith("/"):
                regex_parts.append("(?:.*/)?")
                part = part[1:]
            else:
                regex_parts.append(".*")
        regex_parts.append(_translate_segment(part))
    return re.compile("^" + "".join(regex_parts) + "$")


class PatternMatcher:
    """Decides whether a relative path passes include/exclude filters."""

    def __init__(
        self,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ):
        self.include_patterns = list(include_patterns or [])
        self.exclude_patterns = list(exclude_patterns or [])

    def matches(self, relative_path: str, pattern: str) -> bool:
        """Check if a forward-slash relative path matches one pattern."""
        if pattern.endswith("/"):
            directory = pattern.rstrip("/")
            if "*" not in directory and "?" not in directory and "[" not in directory:
                return relative_path == directory or relative_path.startswith(
                    directory + "/"
                )
            pattern = directory + "/**"

        try:
            regex = glob_to_regex(pattern)
        except (ValueError, re.error):
            logger.debug(f"Ignoring invalid pattern: {pattern}")
            return False

        if regex.match(relative_path):
            return True
        if "/" not in pattern:
            basename = relative_path.rsplit("/", 1)[-1]
            return bool(regex.match(basename))
        return False

    def should_include(self, relative_path: str) -> bool:
        """Apply exclude patterns first, then require an include match.

        An empty include list includes everything not excluded.
        """
        relative_path = relative_path.replace("\\", "/")

        for pattern in self.exclude_patterns:
            if self.matches(relative_path, pattern):
                return False

        if not self.include_patterns:
            return True

        return any(self.matches(relative_path, p) for p in self.include_patterns)

    def validate(self) -> list[PatternError]:
        """Return the include/exclude patterns that cannot be compiled."""
        errors: list[PatternError] = []
        for index, pattern in enumerate(self.include_patterns + self.exclude_patterns):
            try:
                glob_to_regex(pattern.rstrip("/") or pattern)
            except (ValueError, re.error) as e:
                errors.append(PatternError(pattern=pattern, index=index, reason=str(e)))
        return errors
