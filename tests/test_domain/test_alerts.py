"""
Tests for alert evaluation and deduplication
"""
from decimal import Decimal

from wardrobe.domain.alerts import evaluate, applicable_level, build_message
from wardrobe.domain.budget import AlertThresholds

_D = Decimal
_DEFAULT = AlertThresholds()


def _run(percentages, thresholds=_DEFAULT):
    """Evaluate a sequence of spend ratios, carrying the dedup level; return fired types."""
    level = None
    fired = []
    for pct in percentages:
        decision = evaluate(_D(pct), thresholds, level)
        level = decision.level
        if decision.alert:
            fired.append(decision.alert.alert_type)
    return fired, level


def test_warning_then_danger_once_each():
    fired, level = _run(["50", "75", "80", "92", "95"])

    assert fired == ["warning", "danger"]
    assert level == "danger"


def test_only_highest_level_fires_on_jump():
    fired, _ = _run(["10", "120"])

    assert fired == ["exceeded"]


def test_drop_below_rearms_threshold():
    fired, _ = _run(["80", "60", "78"])

    assert fired == ["warning", "warning"]


def test_drop_from_danger_to_warning_is_silent():
    fired, level = _run(["91", "80", "92"])

    assert fired == ["danger", "danger"]
    assert level == "danger"


def test_disabled_level_falls_through():
    thresholds = AlertThresholds(danger_enabled=False)

    assert applicable_level(_D("95"), thresholds) == "warning"
    assert applicable_level(_D("100"), thresholds) == "exceeded"


def test_disabled_exceeded_falls_to_danger():
    thresholds = AlertThresholds(exceeded_enabled=False)

    assert applicable_level(_D("150"), thresholds) == "danger"


def test_master_switch_disables_everything():
    fired, level = _run(["80", "120"], AlertThresholds(alerts_enabled=False))

    assert fired == []
    assert level is None


def test_custom_thresholds():
    thresholds = AlertThresholds(warning_percent=_D("50"), danger_percent=_D("60"))

    assert applicable_level(_D("55"), thresholds) == "warning"
    assert applicable_level(_D("60"), thresholds) == "danger"


def test_messages():
    assert build_message("warning", _D("75")) == "Warning! You've spent 75.0% of your budget."
    assert build_message("danger", _D("92.04")) == "Danger zone! You've spent 92.0% of your budget."
    assert build_message("exceeded", _D("101.26")) == "Budget exceeded! You've spent 101.3% of your budget."
