"""
Alert engine: threshold evaluation with once-per-crossing deduplication.

Severity order: warning < danger < exceeded. Per evaluation only the highest
applicable enabled level is considered. A notification fires only when that
level is more severe than the level already notified for the current
crossing (BudgetSnapshot.alert_level); when spend falls back under a
threshold the stored level is lowered silently, which re-arms it.
"""
from dataclasses import dataclass
from decimal import Decimal

from wardrobe.domain.budget import AlertThresholds

ALERT_WARNING = "warning"
ALERT_DANGER = "danger"
ALERT_EXCEEDED = "exceeded"
ALERT_TYPES = (ALERT_WARNING, ALERT_DANGER, ALERT_EXCEEDED)

_SEVERITY = {None: 0, ALERT_WARNING: 1, ALERT_DANGER: 2, ALERT_EXCEEDED: 3}
_EXCEEDED_PERCENT = Decimal("100")

_MESSAGES = {
    ALERT_EXCEEDED: "Budget exceeded! You've spent {pct:.1f}% of your budget.",
    ALERT_DANGER: "Danger zone! You've spent {pct:.1f}% of your budget.",
    ALERT_WARNING: "Warning! You've spent {pct:.1f}% of your budget.",
}


@dataclass(frozen=True)
class Alert:
    alert_type: str
    message: str
    percentage_used: Decimal


@dataclass(frozen=True)
class AlertDecision:
    """Result of one evaluation: the alert to append (if any) and the new dedup level."""
    alert: Alert | None
    level: str | None


def severity(level: str | None) -> int:
    return _SEVERITY[level]


def applicable_level(percentage_used: Decimal, thresholds: AlertThresholds) -> str | None:
    """Highest enabled level the spend ratio has reached, or None."""
    if not thresholds.alerts_enabled:
        return None
    if percentage_used >= _EXCEEDED_PERCENT and thresholds.exceeded_enabled:
        return ALERT_EXCEEDED
    if percentage_used >= thresholds.danger_percent and thresholds.danger_enabled:
        return ALERT_DANGER
    if percentage_used >= thresholds.warning_percent and thresholds.warning_enabled:
        return ALERT_WARNING
    return None


def build_message(alert_type: str, percentage_used: Decimal) -> str:
    return _MESSAGES[alert_type].format(pct=percentage_used)


def evaluate(
    percentage_used: Decimal,
    thresholds: AlertThresholds,
    notified_level: str | None,
) -> AlertDecision:
    """
    Decide whether a new notification fires

    Args:
        percentage_used: current spend ratio (0..inf)
        thresholds: configured thresholds and enable flags
        notified_level: highest level already notified for the current crossing

    Returns:
        AlertDecision(alert, level) - alert is None when nothing new fires

    Example:
        >>> evaluate(Decimal("92"), AlertThresholds(), "warning").alert.alert_type
        'danger'
        >>> evaluate(Decimal("93"), AlertThresholds(), "danger").alert is None
        True
    """
    level = applicable_level(percentage_used, thresholds)

    if severity(level) > severity(notified_level):
        alert = Alert(
            alert_type=level,
            message=build_message(level, percentage_used),
            percentage_used=percentage_used,
        )
        return AlertDecision(alert=alert, level=level)

    # Same crossing (no new alert) or spend dropped below: track the lower level
    return AlertDecision(alert=None, level=level)
