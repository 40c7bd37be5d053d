"""PJI rules engine - deterministic diagnostic scoring.

This module applies the PJI diagnostic criteria to the findings entered on
the assessment form. The rules are deterministic - given the same inputs,
you get the same outputs - and the engine keeps no state between calls, so
callers simply re-run it after every edit.

The engine follows the scoring sheet in order:
1. Major criteria (sinus tract, two positive cultures) - absolute override
2. Culture consensus (>=2 positive samples with an identified organism)
3. Minor criteria accumulation (serology, synovial WBC, PMN%,
   alpha-defensin, leukocyte esterase)
4. Status from the accumulated score; probability from the score
"""

import logging

from .pji_criteria import (
    MINOR_CRITERIA,
    MAJOR_CRITERION_SCORE,
    MAJOR_CRITERION_PROBABILITY,
    CULTURE_CONSENSUS_PROBABILITY,
    MIN_POSITIVE_CULTURES,
    INFECTED_SCORE_THRESHOLD,
    INCONCLUSIVE_SCORE_THRESHOLD,
    MinorCriterion,
    probability_from_score,
)
from .schemas import (
    ClinicalFindings,
    Diagnosis,
    DiagnosisStatus,
    PatientContext,
)

logger = logging.getLogger(__name__)


class PJIRulesEngine:
    """Deterministic PJI criteria application.

    This engine takes:
    1. ClinicalFindings - what the operator entered
    2. PatientContext - acute/chronic classification

    And produces:
    - Diagnosis with score, probability, status and the criteria that fired

    The minor criteria table can be swapped at construction time; the
    major-criteria and culture-consensus overrides are fixed.
    """

    def __init__(self, minor_criteria: tuple[MinorCriterion, ...] | None = None):
        """Initialize the rules engine.

        Args:
            minor_criteria: Ordered minor-criteria table. Defaults to
                            MINOR_CRITERIA.
        """
        self.minor_criteria = tuple(minor_criteria) if minor_criteria is not None else MINOR_CRITERIA

    def evaluate(
        self,
        findings: ClinicalFindings,
        context: PatientContext,
    ) -> Diagnosis:
        """Apply the PJI criteria to a set of findings.

        Never raises for a structurally valid record: missing data simply
        contributes no score.

        Args:
            findings: Current assessment form contents
            context: Acute/chronic classification for the patient

        Returns:
            Diagnosis with classification and reasoning
        """
        # === STEP 1: Major criteria ===
        major_result = self._check_major_criteria(findings)
        if major_result:
            return major_result

        # === STEP 2: Culture consensus ===
        culture_result = self._check_culture_consensus(findings)
        if culture_result:
            return culture_result

        # === STEP 3: Minor criteria ===
        score, reasoning = self._score_minor_criteria(findings, context)

        # === STEP 4: Classification ===
        status = self._classify_score(score)
        probability = probability_from_score(score)

        logger.debug(
            "PJI score %d -> %s (probability %.0f%%, acute=%s)",
            score, status.value, probability, context.is_acute_infection,
        )
        return Diagnosis(
            score=score,
            probability=probability,
            status=status,
            reasoning=reasoning,
        )

    def _check_major_criteria(self, findings: ClinicalFindings) -> Diagnosis | None:
        """Sinus tract or two positive cultures is diagnostic on its own."""
        if findings.symptoms.sinus_tract or findings.major_criteria.two_positive_cultures:
            logger.debug("Major criterion met - skipping minor criteria")
            return Diagnosis(
                score=MAJOR_CRITERION_SCORE,
                probability=float(MAJOR_CRITERION_PROBABILITY),
                status=DiagnosisStatus.INFECTED,
                reasoning=["Major criterion: sinus tract or two positive cultures"],
            )
        return None

    def _check_culture_consensus(self, findings: ClinicalFindings) -> Diagnosis | None:
        """Two or more positive samples with a named organism."""
        positives = findings.positive_cultures()
        if len(positives) < MIN_POSITIVE_CULTURES:
            return None

        organisms = list(dict.fromkeys(s.bacteria_name for s in positives))
        logger.debug(
            "Culture consensus: %d positive samples (%s)",
            len(positives), ", ".join(organisms),
        )
        return Diagnosis(
            score=MAJOR_CRITERION_SCORE,
            probability=float(CULTURE_CONSENSUS_PROBABILITY),
            status=DiagnosisStatus.INFECTED,
            reasoning=[
                f"Major criterion: {len(positives)} positive culture samples",
                f"Organisms: {', '.join(organisms)}",
            ],
        )

    def _score_minor_criteria(
        self,
        findings: ClinicalFindings,
        context: PatientContext,
    ) -> tuple[int, list[str]]:
        """Sum weights of the criteria that fire, in table order."""
        score = 0
        reasoning = []
        for criterion in self.minor_criteria:
            if not criterion.applies(findings, context):
                continue
            score += criterion.weight
            reasoning.append(criterion.describe(context))
            logger.debug("Minor criterion %s: +%d", criterion.rule_id, criterion.weight)
        return score, reasoning

    def _classify_score(self, score: int) -> DiagnosisStatus:
        if score >= INFECTED_SCORE_THRESHOLD:
            return DiagnosisStatus.INFECTED
        if score >= INCONCLUSIVE_SCORE_THRESHOLD:
            return DiagnosisStatus.INCONCLUSIVE
        return DiagnosisStatus.NOT_INFECTED


# =============================================================================
# Convenience functions
# =============================================================================

_default_engine = PJIRulesEngine()


def evaluate_pji(
    findings: ClinicalFindings,
    context: PatientContext,
) -> Diagnosis:
    """Convenience function to score a case with the default criteria.

    Args:
        findings: Current assessment form contents
        context: Acute/chronic classification for the patient

    Returns:
        Diagnosis
    """
    return _default_engine.evaluate(findings, context)
