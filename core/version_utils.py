"""
Utility functions for extracting browser versions from user-agent strings.
"""
import re
from typing import List, Match, NamedTuple, Optional, Pattern

from core.errors import RulesError


class Version(NamedTuple):
    """Version triple extracted from a user agent."""
    full: str
    major: str
    minor: str


# Missing major/minor components default to this value
DEFAULT_COMPONENT = "0"

# Text allowed between two captured groups that still form one version
VERSION_SEPARATOR = re.compile(r"[._-]")


def compile_version_pattern(text: str) -> Pattern:
    """
    Compile a ``version_regex`` from a rule set.

    Args:
        text: The regular expression source

    Returns:
        Compiled pattern

    Raises:
        RulesError: If the pattern is invalid or captures nothing
    """
    try:
        pattern = re.compile(text)
    except re.error as e:
        raise RulesError(f"Invalid version_regex {text!r}: {e}") from e
    if pattern.groups < 1:
        raise RulesError(f"version_regex {text!r} needs at least one capture group")
    return pattern


def _spans_one_version(match: Match, captured: List[int]) -> bool:
    """True if the captured groups are nested or joined by a single separator."""
    spans = sorted(match.span(i) for i in captured)
    end = spans[0][1]
    for start, stop in spans[1:]:
        if start > end and not VERSION_SEPARATOR.fullmatch(match.string[end:start]):
            return False
        end = max(end, stop)
    return True


def extract_version(pattern: Optional[Pattern], user_agent: str) -> Optional[Version]:
    """
    Apply a version pattern to a user agent.

    Patterns with three or more groups follow the rule-set convention
    ``((\\d+)\\.(\\d+))``: full, major and minor in that order. With fewer
    groups the minor component is "0". ``full`` is the text spanned by the
    captured groups when they are nested or separated by a single ".", "_"
    or "-"; otherwise groups capture unrelated parts of the user agent and
    only the first one is used.

    Examples:
        - ``Chrome\\/(([0-9]+)\\.?([\\w]+)?)`` on "Chrome/90.0.4430" -> ("90.0", "90", "0")
        - ``Chrome/(\\d+)\\.(\\d+)`` on "Chrome/90.0.4430" -> ("90.0", "90", "0")
        - ``rv:(\\d+)\\.\\d+\\) Gecko/(\\d+)`` on "rv:89.0) Gecko/20100101" -> ("89", "89", "0")
        - ``Lynx/(\\d+)`` on "Lynx/2.8.9" -> ("2", "2", "0")

    Args:
        pattern: Compiled version pattern, or None
        user_agent: The user agent to search

    Returns:
        Extracted Version, or None if there is no pattern or it does not match
    """
    if pattern is None:
        return None

    match = pattern.search(user_agent)
    if not match:
        return None

    groups = match.groups()
    if len(groups) >= 3:
        full, major, minor = groups[:3]
        return Version(
            full=full or "",
            major=major or DEFAULT_COMPONENT,
            minor=minor or DEFAULT_COMPONENT,
        )

    captured = [i for i in range(1, len(groups) + 1) if match.group(i) is not None]
    if not captured:
        return Version(full="", major=DEFAULT_COMPONENT, minor=DEFAULT_COMPONENT)

    first = match.group(captured[0])
    if not _spans_one_version(match, captured):
        return Version(full=first, major=first, minor=DEFAULT_COMPONENT)

    start = min(match.start(i) for i in captured)
    end = max(match.end(i) for i in captured)
    full = match.string[start:end]
    major = next((match.group(i) for i in captured if match.group(i) != full), first)
    return Version(full=full, major=major, minor=DEFAULT_COMPONENT)
