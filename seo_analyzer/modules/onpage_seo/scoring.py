"""Priority-weighted 0-100 score and qualitative rating for a set of checks."""

from typing import Iterable

from seo_analyzer.modules.onpage_seo.document import CheckResult, Priority

_PRIORITY_WEIGHTS: dict[Priority, int] = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}
_DEFAULT_WEIGHT = _PRIORITY_WEIGHTS[Priority.MEDIUM]

_RATING_MAP = [
    (90, "Excellent"),
    (80, "Very Good"),
    (70, "Good"),
    (60, "Fair"),
    (50, "Needs Work"),
    (0, "Poor"),
]


def weight_for(priority) -> int:
    try:
        return _PRIORITY_WEIGHTS[Priority(priority)]
    except ValueError:
        return _DEFAULT_WEIGHT


def score(checks: Iterable[CheckResult]) -> int:
    """100 x earned weight / total weight, halves rounded up; 0 when there is nothing to weigh."""
    earned = 0
    total = 0
    for check in checks:
        weight = weight_for(check.priority)
        total += weight
        if check.passed:
            earned += weight
    if total == 0:
        return 0
    return int(100 * earned / total + 0.5)


def rating_for(value: float) -> str:
    for threshold, label in _RATING_MAP:
        if value >= threshold:
            return label
    return "Poor"
