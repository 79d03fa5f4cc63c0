import copy
import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.classifier import UserAgentClassifier  # noqa: E402
from rules.rules_loader import build_model, load_rules  # noqa: E402


# Reference sections shared by the hand-written rule sets in the tests
REFERENCE_SECTIONS = {
    "device_types": {"computer": "Computer", "mobile": "Mobile", "unknown": "Unknown"},
    "browser_types": {"web_browser": "Browser", "mobile_browser": "Browser (mobile)", "unknown": "unknown"},
    "rendering_engines": {"webkit": "WebKit", "blink": "Blink", "unknown": "Unknown"},
    "manufacturers": {
        "unknown": {"id": 0, "name": "Unknown"},
        "apple": {"id": 3, "name": "Apple Inc."},
        "google": {"id": 25, "name": "Google Inc."},
    },
}

UNKNOWN_BROWSER = {"id": 0, "name": "Unknown"}
UNKNOWN_OPERATING_SYSTEM = {"id": 0, "name": "Unknown"}


def make_document(browsers=None, operating_systems=None):
    """A complete rule document with the given forests plus "unknown" sentinels."""
    document = copy.deepcopy(REFERENCE_SECTIONS)
    document["browsers"] = dict(browsers or {})
    document["browsers"].setdefault("unknown", dict(UNKNOWN_BROWSER))
    document["operating_systems"] = dict(operating_systems or {})
    document["operating_systems"].setdefault("unknown", dict(UNKNOWN_OPERATING_SYSTEM))
    return document


@pytest.fixture
def make_model():
    def _make(browsers=None, operating_systems=None):
        return build_model(make_document(browsers, operating_systems))
    return _make


@pytest.fixture(scope="session")
def bundled_model():
    return load_rules()


@pytest.fixture(scope="session")
def classifier(bundled_model):
    return UserAgentClassifier(bundled_model)
