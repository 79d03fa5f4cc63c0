"""Rule-driven user-agent classification.

Matching is a greedy, order-sensitive walk over a taxonomy forest:

1. a node is a candidate only if one of its aliases is a case-insensitive
   substring of the user agent;
2. its children are tried in configuration order and the first child that
   matches wins outright, without consulting any exclude list above it;
3. if no child matches, the node's own exclude list can veto it. A veto
   drops the whole branch; it never falls back to the parent.

Roots are tried in configuration order and the forest's "unknown" sentinel is
returned when none of them matches.
"""
import logging
from typing import Iterable, Optional

from core.model import ClassificationModel
from models.detection import UserAgentDetection
from models.taxonomy import Browser, Forest, N, OperatingSystem

logger = logging.getLogger(__name__)


def _contains_any(lowered_user_agent: str, needles: Iterable[str]) -> bool:
    return any(needle.lower() in lowered_user_agent for needle in needles)


def matches_any(user_agent: str, needles: Iterable[str]) -> bool:
    """Return True if any needle is a case-insensitive substring of the user agent."""
    return _contains_any(user_agent.lower(), needles)


def _match(node: N, lowered_user_agent: str) -> Optional[N]:
    if not _contains_any(lowered_user_agent, node.aliases):
        return None

    for child in node.children:
        matched = _match(child, lowered_user_agent)
        if matched is not None:
            return matched

    if _contains_any(lowered_user_agent, node.exclude_list):
        logger.debug(f"'{node.key}' vetoed by its exclude list")
        return None

    return node


def match_node(node: N, user_agent: str) -> Optional[N]:
    """
    Find the most specific node in ``node``'s subtree matching a user agent.

    Args:
        node: Subtree root to test
        user_agent: Raw user-agent string

    Returns:
        The matching node (``node`` itself or a descendant), or None
    """
    return _match(node, user_agent.lower())


def classify(forest: Forest[N], user_agent: str) -> N:
    """
    Classify a user agent against a forest.

    Args:
        forest: Browser or operating system forest
        user_agent: Raw user-agent string

    Returns:
        The first root match in configuration order, else the forest's
        "unknown" sentinel
    """
    lowered = user_agent.lower()
    for root in forest.roots:
        matched = _match(root, lowered)
        if matched is not None:
            return matched
    return forest.unknown


class UserAgentClassifier:
    """Read-only query surface over a loaded ClassificationModel.

    Holds no per-call state, so one instance can serve concurrent callers.

    Example:
        classifier = UserAgentClassifier(load_rules())
        detection = classifier.classify(user_agent)
        print(detection.browser.name, detection.operating_system.name)
    """

    def __init__(self, model: ClassificationModel):
        self.model = model

    def classify_browser(self, user_agent: str) -> Browser:
        return classify(self.model.browsers, user_agent)

    def classify_operating_system(self, user_agent: str) -> OperatingSystem:
        return classify(self.model.operating_systems, user_agent)

    def classify(self, user_agent: str) -> UserAgentDetection:
        """Classify browser and operating system, and extract the browser version."""
        browser = self.classify_browser(user_agent)
        operating_system = self.classify_operating_system(user_agent)
        version = browser.extract_version(user_agent)
        logger.debug(
            f"Classified as browser={browser.key} os={operating_system.key} "
            f"version={version.full if version else None}"
        )
        return UserAgentDetection(
            user_agent=user_agent,
            browser=browser,
            operating_system=operating_system,
            version=version,
        )
