"""Regression cases for the bundled rule set, driven by useragent_test.yml."""
import os

import pytest
import yaml

FIXTURE_FILE = os.path.join(os.path.dirname(__file__), "useragent_test.yml")

with open(FIXTURE_FILE, "r", encoding="utf-8") as f:
    TEST_CASES = yaml.safe_load(f)["test_cases"]


def _case_id(case):
    return f"{case['browser']}-{case['operating_system']}"


@pytest.mark.parametrize("case", TEST_CASES, ids=[_case_id(c) for c in TEST_CASES])
def test_bundled_rules_classify_fixture(classifier, case):
    detection = classifier.classify(case["user_agent"])

    assert detection.browser.key == case["browser"]
    assert detection.operating_system.key == case["operating_system"]
    if "version" in case:
        expected = tuple(case["version"]) if case["version"] is not None else None
        assert detection.version == expected
    if "device_type" in case:
        assert detection.operating_system.resolved_device_type().name == case["device_type"]


def test_fixture_browser_ids_follow_manufacturer(bundled_model):
    """Every classified node carries the id composed from its manufacturer."""
    for case in TEST_CASES:
        browser = bundled_model.browsers.find(case["browser"])
        assert browser.id == (browser.resolved_manufacturer().id << 8) | browser.local_id
