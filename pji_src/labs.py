"""Serial inflammatory marker tracking.

Holds the post-operative WBC / Neu% / ESR / CRP series shown on the lab
analytics page and flags values above the alert thresholds.
"""

import logging
from dataclasses import replace

from .models import LabResult

logger = logging.getLogger(__name__)

LAB_DAYS = ("Pre-Op", "Day 1", "Day 3", "Day 7")

# Alert threshold per marker: (threshold, unit)
LAB_ALERT_THRESHOLDS = {
    "wbc": (10.0, "10^9/L"),
    "neu": (75.0, "%"),
    "esr": (30.0, "mm/hr"),
    "crp": (10.0, "mg/L"),
}


def default_lab_series() -> list[LabResult]:
    """Empty series with one entry per monitored day."""
    return [LabResult(day=day) for day in LAB_DAYS]


def update_lab_value(
    series: list[LabResult],
    day: str,
    marker: str,
    value: float | None,
) -> list[LabResult]:
    """Return a new series with one marker value replaced.

    Args:
        series: Current lab series
        day: Day label to update
        marker: One of wbc, neu, esr, crp
        value: New value, or None to clear it

    Raises:
        ValueError: If marker is not a tracked marker
    """
    if marker not in LAB_ALERT_THRESHOLDS:
        raise ValueError(f"Unknown lab marker: {marker}. Use: {list(LAB_ALERT_THRESHOLDS)}")
    if not any(item.day == day for item in series):
        logger.debug("No lab entry for day %s - series unchanged", day)
    return [
        replace(item, **{marker: value}) if item.day == day else item
        for item in series
    ]


def is_elevated(marker: str, value: float | None) -> bool:
    if value is None or marker not in LAB_ALERT_THRESHOLDS:
        return False
    threshold, _unit = LAB_ALERT_THRESHOLDS[marker]
    return value > threshold


def elevated_markers(series: list[LabResult]) -> list[tuple[str, str, float]]:
    """List (day, marker, value) for every value above its alert threshold."""
    elevated = []
    for item in series:
        for marker in LAB_ALERT_THRESHOLDS:
            value = getattr(item, marker)
            if is_elevated(marker, value):
                elevated.append((item.day, marker, value))
    return elevated


def latest_value(series: list[LabResult], marker: str) -> float | None:
    """Most recent recorded value of a marker, or None."""
    for item in reversed(series):
        value = getattr(item, marker)
        if value is not None:
            return value
    return None
