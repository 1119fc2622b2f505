"""File Matcher - declarative predicate over file metadata.

Philosophy:
- Pure: no I/O, no connection access
- Eager: patterns compiled and criteria validated at build time
- Conjunctive: a file matches only if every configured sub-predicate holds

Patterns use the syntax prefixes ``glob:`` (default) and ``regex:``. Globs
understand ``*`` (within one path segment), ``**`` (across segments), ``?``,
``[...]`` character classes and ``{a,b}`` alternation.

Public API (the "studs"):
    MatchPolicy: REQUIRE / INCLUDE / EXCLUDE per file type
    MatcherCriteria: Declarative criteria value object
    FileMatcher: Compiled predicate
    matches: One-shot helper
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from re import Pattern

from smbconnector.exceptions import ConfigurationError
from smbconnector.models import FileAttributes

logger = logging.getLogger(__name__)

GLOB_PREFIX = "glob:"
REGEX_PREFIX = "regex:"


class MatchPolicy(str, Enum):
    """Tri-state policy applied per file type."""

    REQUIRE = "REQUIRE"
    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"


@dataclass(frozen=True)
class MatcherCriteria:
    """Matching criteria. Unset fields do not constrain the match."""

    filename_pattern: str | None = None
    path_pattern: str | None = None
    timestamp_since: datetime | None = None
    timestamp_until: datetime | None = None
    min_size: int | None = None
    max_size: int | None = None
    regular_files: MatchPolicy = MatchPolicy.INCLUDE
    directories: MatchPolicy = MatchPolicy.INCLUDE
    sym_links: MatchPolicy = MatchPolicy.INCLUDE

    def validate(self) -> None:
        """Check criteria consistency.

        Raises:
            ConfigurationError: Bounds are inverted or negative, or more than
                one file type carries REQUIRE
        """
        for name in ("min_size", "max_size"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigurationError(f"{name} must not be negative (got {value})")

        if self.min_size is not None and self.max_size is not None:
            if self.min_size > self.max_size:
                raise ConfigurationError(
                    f"min_size ({self.min_size}) is greater than max_size ({self.max_size})"
                )

        if self.timestamp_since is not None and self.timestamp_until is not None:
            since, until = _comparable(self.timestamp_since, self.timestamp_until)
            if since > until:
                raise ConfigurationError(
                    f"timestamp_since ({self.timestamp_since}) is after "
                    f"timestamp_until ({self.timestamp_until})"
                )

        required = [
            name
            for name, policy in (
                ("regular_files", self.regular_files),
                ("directories", self.directories),
                ("sym_links", self.sym_links),
            )
            if policy == MatchPolicy.REQUIRE
        ]
        if len(required) > 1:
            raise ConfigurationError(
                f"Only one file type can be REQUIRE'd, got: {', '.join(required)}"
            )


def compile_pattern(pattern: str) -> Pattern:
    """Compile a ``glob:``/``regex:`` pattern into a regular expression.

    Args:
        pattern: Pattern with optional syntax prefix (glob when omitted)

    Returns:
        Compiled expression, to be used with ``fullmatch``

    Raises:
        ConfigurationError: Pattern is empty or malformed
    """
    if not pattern or not pattern.strip():
        raise ConfigurationError("Matcher pattern cannot be empty")

    if pattern.startswith(REGEX_PREFIX):
        source = pattern[len(REGEX_PREFIX) :]
    else:
        glob = pattern[len(GLOB_PREFIX) :] if pattern.startswith(GLOB_PREFIX) else pattern
        source = _glob_to_regex(glob)

    try:
        return re.compile(source)
    except re.error as e:
        raise ConfigurationError(f"Invalid matcher pattern '{pattern}': {e}") from e


def _glob_to_regex(glob: str) -> str:
    out: list[str] = []
    i = 0
    n = len(glob)

    while i < n:
        c = glob[i]
        if c == "*":
            if i + 1 < n and glob[i + 1] == "*":
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 1)
            if end == -1:
                raise ConfigurationError(f"Unclosed character class in glob '{glob}'")
            content = glob[i + 1 : end]
            if content.startswith("!"):
                content = "^" + content[1:]
            out.append("[" + content.replace("\\", "\\\\") + "]")
            i = end + 1
            continue
        elif c == "{":
            end = glob.find("}", i + 1)
            if end == -1:
                raise ConfigurationError(f"Unclosed group in glob '{glob}'")
            content = glob[i + 1 : end]
            if "{" in content:
                raise ConfigurationError(f"Nested groups are not supported in glob '{glob}'")
            alternatives = [_glob_to_regex(alt.strip()) for alt in content.split(",")]
            out.append("(?:" + "|".join(alternatives) + ")")
            i = end + 1
            continue
        elif c == "\\" and i + 1 < n:
            out.append(re.escape(glob[i + 1]))
            i += 2
            continue
        else:
            out.append(re.escape(c))
        i += 1

    return "".join(out)


def _comparable(a: datetime, b: datetime) -> tuple[datetime, datetime]:
    """Align naive/aware datetimes so they can be compared."""
    if (a.tzinfo is None) == (b.tzinfo is None):
        return a, b
    if a.tzinfo is not None:
        a = a.astimezone().replace(tzinfo=None)
    if b.tzinfo is not None:
        b = b.astimezone().replace(tzinfo=None)
    return a, b


class FileMatcher:
    """Compiled file predicate.

    Example:
        >>> matcher = FileMatcher(MatcherCriteria(filename_pattern="*.txt", max_size=1024))
        >>> matcher.matches(FileAttributes(path="in/a.txt", size=10))
        True
    """

    def __init__(self, criteria: MatcherCriteria | None = None):
        """Build the predicate.

        Args:
            criteria: Matching criteria (None matches everything)

        Raises:
            ConfigurationError: Criteria are invalid
        """
        self.criteria = criteria or MatcherCriteria()
        self.criteria.validate()
        self._filename_regex = (
            compile_pattern(self.criteria.filename_pattern)
            if self.criteria.filename_pattern
            else None
        )
        self._path_regex = (
            compile_pattern(self.criteria.path_pattern) if self.criteria.path_pattern else None
        )
        logger.debug(f"Built file matcher: {self.criteria}")

    def matches(self, attributes: FileAttributes) -> bool:
        """Evaluate all sub-predicates against ``attributes``."""
        return (
            self._matches_filename(attributes)
            and self._matches_path(attributes)
            and self._matches_timestamp(attributes)
            and self._matches_size(attributes)
            and self._matches_type(attributes)
        )

    __call__ = matches

    def _matches_filename(self, attributes: FileAttributes) -> bool:
        if self._filename_regex is None:
            return True
        return self._filename_regex.fullmatch(attributes.name) is not None

    def _matches_path(self, attributes: FileAttributes) -> bool:
        if self._path_regex is None:
            return True
        return self._path_regex.fullmatch(attributes.path) is not None

    def _matches_timestamp(self, attributes: FileAttributes) -> bool:
        since = self.criteria.timestamp_since
        until = self.criteria.timestamp_until
        if since is None and until is None:
            return True

        modified = attributes.last_modified
        if modified is None:
            return False

        if since is not None:
            lower, value = _comparable(since, modified)
            if value < lower:
                return False
        if until is not None:
            value, upper = _comparable(modified, until)
            if value > upper:
                return False
        return True

    def _matches_size(self, attributes: FileAttributes) -> bool:
        min_size = self.criteria.min_size
        max_size = self.criteria.max_size
        if min_size is None and max_size is None:
            return True

        if attributes.size is None:
            return False
        if min_size is not None and attributes.size < min_size:
            return False
        if max_size is not None and attributes.size > max_size:
            return False
        return True

    def _matches_type(self, attributes: FileAttributes) -> bool:
        checks = (
            (self.criteria.regular_files, attributes.is_regular_file),
            (self.criteria.directories, attributes.is_directory),
            (self.criteria.sym_links, attributes.is_symlink),
        )
        for policy, is_type in checks:
            if policy == MatchPolicy.EXCLUDE and is_type:
                return False
            if policy == MatchPolicy.REQUIRE and not is_type:
                return False
        return True


def matches(attributes: FileAttributes, criteria: MatcherCriteria | None = None) -> bool:
    """Build a matcher for ``criteria`` and evaluate it once."""
    return FileMatcher(criteria).matches(attributes)


__all__ = ["FileMatcher", "MatchPolicy", "MatcherCriteria", "compile_pattern", "matches"]
