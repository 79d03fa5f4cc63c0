"""Tests for rule-set lint checks."""
from core.rules_validator import (
    detect_duplicate_ids,
    detect_shadowed_nodes,
    detect_unmatchable_nodes,
    detect_unused_references,
    has_problems,
    print_validation_report,
)


def test_bundled_rules_are_clean(bundled_model):
    """The bundled rule set has unique ids and no unreachable rules."""
    for forest in (bundled_model.browsers, bundled_model.operating_systems):
        assert detect_duplicate_ids(forest) == {}
        assert detect_shadowed_nodes(forest) == []
        assert detect_unmatchable_nodes(forest) == []
    assert not has_problems(bundled_model)


def test_detect_duplicate_ids(make_model):
    model = make_model(
        browsers={
            "chrome": {"id": 1, "manufacturer": "google", "aliases": ["Chrome"]},
            "chromium": {"id": 1, "manufacturer": "google", "aliases": ["Chromium"]},
            "safari": {"id": 1, "manufacturer": "apple", "aliases": ["Safari"]},
        }
    )
    assert detect_duplicate_ids(model.browsers) == {(25 << 8) | 1: ["chrome", "chromium"]}


def test_detect_shadowed_nodes(make_model):
    model = make_model(
        browsers={
            "chrome": {
                "id": 1,
                "aliases": ["Chrome"],
                "children": {
                    "mobile": {"id": 2, "aliases": ["Mobile"]},
                    "mobile_safari": {"id": 3, "aliases": ["Mobile Safari", "mobile/"]},
                },
            },
            "chrome_frame": {"id": 4, "aliases": ["chromeframe", "Chrome Frame"]},
        }
    )
    assert detect_shadowed_nodes(model.browsers) == [
        ("chrome_frame", "chrome"),
        ("chrome.mobile_safari", "chrome.mobile"),
    ]


def test_exclude_list_prevents_shadowing(make_model):
    model = make_model(
        browsers={
            "chrome": {"id": 1, "aliases": ["Chrome"], "exclude_list": ["Chrome Frame"]},
            "chrome_frame": {"id": 2, "aliases": ["chromeframe"]},
        }
    )
    assert detect_shadowed_nodes(model.browsers) == []


def test_detect_unmatchable_nodes(make_model):
    model = make_model(
        operating_systems={
            "windows": {"id": 1, "aliases": ["Windows"], "children": {"windows_11": {"id": 2}}},
        }
    )
    assert detect_unmatchable_nodes(model.operating_systems) == ["windows.windows_11"]
    assert has_problems(model)


def test_detect_unused_references(make_model):
    model = make_model(
        browsers={"chrome": {"id": 1, "manufacturer": "google", "rendering_engine": "blink", "aliases": ["Chrome"]}},
        operating_systems={"ios": {"id": 1, "device_type": "mobile", "aliases": ["iPhone"]}},
    )
    unused = detect_unused_references(model)
    assert unused["manufacturers"] == ["apple"]
    assert unused["rendering_engines"] == ["webkit"]
    assert unused["device_types"] == ["computer"]
    assert unused["browser_types"] == ["web_browser", "mobile_browser"]
    assert "application_types" not in unused


def test_print_validation_report(make_model, capsys):
    model = make_model(
        browsers={
            "chrome": {"id": 1, "aliases": ["Chrome"]},
            "chrome_frame": {"id": 1, "aliases": ["chromeframe"]},
        }
    )
    print_validation_report(model)
    out = capsys.readouterr().out
    assert "USER-AGENT RULES VALIDATION REPORT" in out
    assert "DUPLICATE IDS: 1" in out
    assert "'chrome_frame' is always claimed by 'chrome'" in out
    assert "✓ No duplicate ids" in out  # operating systems section
