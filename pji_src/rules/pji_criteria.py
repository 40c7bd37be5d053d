"""PJI diagnostic criteria reference data and constants.

This module contains the thresholds, weights and scoring bounds used by the
PJI rules engine, together with the small pure helpers the rules depend on
(numeric parsing of free-text lab results, reference-range flags, the
acute/chronic window).

The minor criteria are kept as a data table (``MINOR_CRITERIA``) rather than
hard-coded branches so that weights and thresholds can be revised by the
orthopaedic infection team without touching the engine.

Reference: 2018 International Consensus Meeting (ICM) definition of PJI,
as adapted by the hospital's joint infection pathway.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .schemas import ClinicalFindings, PatientContext

# =============================================================================
# Version tracking
# =============================================================================

CRITERIA_VERSION = "ICM-2018-local"
LAST_UPDATED = "2026-10-19"


# =============================================================================
# Acute vs chronic classification
# =============================================================================

# Symptom onset < 3 weeks after index surgery is an acute infection
ACUTE_WINDOW_DAYS = 21


def elapsed_days(start: date | datetime, end: date | datetime) -> int:
    """Whole days between two dates, rounded up, order-independent."""
    if isinstance(start, datetime) != isinstance(end, datetime):
        # Promote plain dates so they can be subtracted from datetimes
        if not isinstance(start, datetime):
            start = datetime.combine(start, datetime.min.time())
        if not isinstance(end, datetime):
            end = datetime.combine(end, datetime.min.time())
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / 86400)


def is_acute_infection(
    surgery_date: date | datetime | None,
    symptom_date: date | datetime | None,
    window_days: int = ACUTE_WINDOW_DAYS,
) -> bool:
    """Check whether symptom onset falls inside the acute window.

    Args:
        surgery_date: Date of the index arthroplasty
        symptom_date: Date of symptom onset
        window_days: Acute window length in days

    Returns:
        True if elapsed days < window_days. Missing dates count as chronic.
    """
    if surgery_date is None or symptom_date is None:
        return False
    return elapsed_days(surgery_date, symptom_date) < window_days


# =============================================================================
# Major criteria
# =============================================================================

# Score and probability reported when a major criterion short-circuits scoring
MAJOR_CRITERION_SCORE = 99
MAJOR_CRITERION_PROBABILITY = 100
CULTURE_CONSENSUS_PROBABILITY = 95

# Positive culture samples (with an identified organism) needed for consensus
MIN_POSITIVE_CULTURES = 2


# =============================================================================
# Minor criteria thresholds
# =============================================================================

# Serum inflammatory markers
SEROLOGY_CRP_THRESHOLD = 10.0   # mg/L
SEROLOGY_ESR_THRESHOLD = 30.0   # mm/hr

# Synovial fluid leukocyte count (cells/microL)
SYNOVIAL_WBC_THRESHOLD_ACUTE = 10000
SYNOVIAL_WBC_THRESHOLD_CHRONIC = 3000

# Synovial fluid PMN percentage
SYNOVIAL_PMN_THRESHOLD_ACUTE = 90
SYNOVIAL_PMN_THRESHOLD_CHRONIC = 80

ALPHA_DEFENSIN_POSITIVE = "Positive"
LEUKOCYTE_ESTERASE_POSITIVE = ("2+", "3+")

# Lab row names that carry serum CRP / ESR values
CRP_TEST_ALIASES = ("crp", "c-reactive protein")
ESR_TEST_ALIASES = ("esr", "sedimentation")

# Panels and row-name markers that hold synovial (not serum) values
SYNOVIAL_PANEL_NAMES = {"synovial_fluid", "synovial", "fluid"}
SYNOVIAL_ROW_MARKERS = ("synovial", "fluid")


# =============================================================================
# Score classification
# =============================================================================

INFECTED_SCORE_THRESHOLD = 6
INCONCLUSIVE_SCORE_THRESHOLD = 4

PROBABILITY_SCORE_SCALE = 10
MIN_PROBABILITY = 5
MAX_PROBABILITY = 99


def probability_from_score(score: int) -> float:
    """Map an accumulated minor-criteria score to a probability (5-99)."""
    raw = score * 100 / PROBABILITY_SCORE_SCALE
    return float(min(MAX_PROBABILITY, max(MIN_PROBABILITY, raw)))


# =============================================================================
# Free-text numeric parsing and reference ranges
# =============================================================================

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_numeric(text: str | None) -> float | None:
    """Parse the leading number of a free-text lab value.

    "12", " 4.5 mg/L" and "1e4" parse; "abc", "" and None do not.
    """
    if not text:
        return None
    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    return float(match.group(1))


def classify_result(result: str, normal_range: str) -> str | None:
    """Flag a lab result against its free-text reference range.

    Supported range forms, checked in this order:
        "low - high"  -> "L" below low, "H" above high
        "< max"       -> "H" above max
        "> min"       -> "L" below min

    Args:
        result: Free-text result as entered
        normal_range: Free-text reference range

    Returns:
        "L", "H" or None when in range, unparseable or unsupported.
    """
    if not result or not normal_range:
        return None
    value = parse_numeric(result)
    if value is None:
        return None

    if "-" in normal_range:
        low_text, high_text = normal_range.split("-", 1)
        low = parse_numeric(low_text)
        high = parse_numeric(high_text)
        if low is not None and high is not None:
            if value < low:
                return "L"
            if value > high:
                return "H"
            return None

    stripped = normal_range.strip()
    if stripped.startswith("<"):
        maximum = parse_numeric(stripped[1:])
        if maximum is not None and value > maximum:
            return "H"
    elif stripped.startswith(">"):
        minimum = parse_numeric(stripped[1:])
        if minimum is not None and value < minimum:
            return "L"

    return None


def find_serum_values(findings: "ClinicalFindings", aliases: tuple[str, ...]) -> list[float]:
    """Collect parseable serum values for a test from the lab panels.

    Rows in synovial panels, or whose name marks them as a fluid test,
    are skipped. Unparseable results are ignored.
    """
    values = []
    for panel_name, rows in findings.laboratory_panels.items():
        if panel_name.lower() in SYNOVIAL_PANEL_NAMES:
            continue
        for row in rows:
            name = row.name.lower()
            if any(marker in name for marker in SYNOVIAL_ROW_MARKERS):
                continue
            if not any(alias in name for alias in aliases):
                continue
            value = parse_numeric(row.result)
            if value is not None:
                values.append(value)
    return values


# =============================================================================
# Minor criteria rule table
# =============================================================================

@dataclass(frozen=True)
class MinorCriterion:
    """One weighted minor criterion.

    ``message`` may reference ``{threshold}``; it is filled from
    ``threshold(context)`` when the criterion has a context-dependent cutoff.
    """
    rule_id: str
    weight: int
    message: str
    predicate: Callable[["ClinicalFindings", "PatientContext"], bool]
    threshold: Callable[["PatientContext"], int | float] | None = None

    def applies(self, findings: "ClinicalFindings", context: "PatientContext") -> bool:
        return bool(self.predicate(findings, context))

    def describe(self, context: "PatientContext") -> str:
        if self.threshold is None:
            return self.message
        return self.message.format(threshold=self.threshold(context))


def synovial_wbc_threshold(context: "PatientContext") -> int:
    if context.is_acute_infection:
        return SYNOVIAL_WBC_THRESHOLD_ACUTE
    return SYNOVIAL_WBC_THRESHOLD_CHRONIC


def synovial_pmn_threshold(context: "PatientContext") -> int:
    if context.is_acute_infection:
        return SYNOVIAL_PMN_THRESHOLD_ACUTE
    return SYNOVIAL_PMN_THRESHOLD_CHRONIC


def _synovial_wbc_elevated(findings: "ClinicalFindings", context: "PatientContext") -> bool:
    fluid = findings.synovial_fluid
    if fluid is None or fluid.wbc_count is None:
        return False
    return fluid.wbc_count > synovial_wbc_threshold(context)


def _synovial_pmn_elevated(findings: "ClinicalFindings", context: "PatientContext") -> bool:
    fluid = findings.synovial_fluid
    if fluid is None or fluid.pmn_percent is None:
        return False
    return fluid.pmn_percent > synovial_pmn_threshold(context)


def _alpha_defensin_positive(findings: "ClinicalFindings", context: "PatientContext") -> bool:
    fluid = findings.synovial_fluid
    if fluid is None or fluid.alpha_defensin is None:
        return False
    return fluid.alpha_defensin == ALPHA_DEFENSIN_POSITIVE


def _leukocyte_esterase_positive(findings: "ClinicalFindings", context: "PatientContext") -> bool:
    fluid = findings.synovial_fluid
    if fluid is None or fluid.leukocyte_esterase is None:
        return False
    return fluid.leukocyte_esterase in LEUKOCYTE_ESTERASE_POSITIVE


def build_minor_criteria(
    crp_threshold: float = SEROLOGY_CRP_THRESHOLD,
    esr_threshold: float = SEROLOGY_ESR_THRESHOLD,
) -> tuple[MinorCriterion, ...]:
    """Build the ordered minor-criteria table.

    Order matters: reasoning lines are emitted in table order.

    Args:
        crp_threshold: Serum CRP cutoff (mg/L)
        esr_threshold: Serum ESR cutoff (mm/hr)
    """
    def serology_elevated(findings: "ClinicalFindings", context: "PatientContext") -> bool:
        crp_values = find_serum_values(findings, CRP_TEST_ALIASES)
        esr_values = find_serum_values(findings, ESR_TEST_ALIASES)
        return (
            any(v > crp_threshold for v in crp_values)
            or any(v > esr_threshold for v in esr_values)
        )

    return (
        MinorCriterion(
            rule_id="serology",
            weight=2,
            message=f"Elevated CRP (>{crp_threshold:g} mg/L)",
            predicate=serology_elevated,
        ),
        MinorCriterion(
            rule_id="synovial_wbc",
            weight=3,
            message="Synovial WBC > {threshold}",
            predicate=_synovial_wbc_elevated,
            threshold=synovial_wbc_threshold,
        ),
        MinorCriterion(
            rule_id="synovial_pmn",
            weight=2,
            message="PMN% > {threshold}%",
            predicate=_synovial_pmn_elevated,
            threshold=synovial_pmn_threshold,
        ),
        MinorCriterion(
            rule_id="alpha_defensin",
            weight=3,
            message="Alpha-defensin positive",
            predicate=_alpha_defensin_positive,
        ),
        MinorCriterion(
            rule_id="leukocyte_esterase",
            weight=3,
            message="Leukocyte esterase ++",
            predicate=_leukocyte_esterase_positive,
        ),
    )


MINOR_CRITERIA = build_minor_criteria()


def get_minor_criterion(rule_id: str) -> MinorCriterion | None:
    """Look up a default minor criterion by its identifier."""
    for criterion in MINOR_CRITERIA:
        if criterion.rule_id == rule_id:
            return criterion
    return None
