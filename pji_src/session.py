"""Assessment session state.

One AssessmentSession holds everything entered for a single patient during
a sitting: demographics, clinical findings, serial labs and the treatment
plan, plus the diagnosis computed from them.

Sessions are values. Every with_* call returns a new session, and any change
to findings or demographics re-runs the rules engine before returning, so
the stored diagnosis always matches the stored inputs.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date

from .labs import default_lab_series, elevated_markers, update_lab_value
from .models import LabResult, PatientDemographics, TreatmentPlan
from .rules.pji_engine import PJIRulesEngine
from .rules.schemas import ClinicalFindings, Diagnosis, PatientContext
from .treatment import default_treatment

logger = logging.getLogger(__name__)


def default_demographics(today: date | None = None) -> PatientDemographics:
    """Blank intake record dated today."""
    today = today or date.today()
    return PatientDemographics(
        id="",
        name="",
        mrn="",
        height_cm=175.0,
        weight_kg=70.0,
        surgery_date=today,
        symptom_date=today,
    )


@dataclass(frozen=True)
class AssessmentSession:
    """Immutable snapshot of an assessment in progress."""
    demographics: PatientDemographics
    findings: ClinicalFindings
    labs: list[LabResult] = field(default_factory=default_lab_series)
    treatment: TreatmentPlan = field(default_factory=default_treatment)
    diagnosis: Diagnosis = field(default_factory=Diagnosis.pending)
    engine: PJIRulesEngine = field(default_factory=PJIRulesEngine, repr=False, compare=False)

    @classmethod
    def start(
        cls,
        demographics: PatientDemographics | None = None,
        findings: ClinicalFindings | None = None,
        engine: PJIRulesEngine | None = None,
    ) -> "AssessmentSession":
        """Open a session and run the first evaluation."""
        session = cls(
            demographics=demographics or default_demographics(),
            findings=findings or ClinicalFindings.default(),
            engine=engine or PJIRulesEngine(),
        )
        return session._reevaluate()

    @property
    def context(self) -> PatientContext:
        return self.demographics.context()

    def with_findings(self, findings: ClinicalFindings) -> "AssessmentSession":
        return replace(self, findings=findings)._reevaluate()

    def with_demographics(self, demographics: PatientDemographics) -> "AssessmentSession":
        return replace(self, demographics=demographics)._reevaluate()

    def with_lab_value(self, day: str, marker: str, value: float | None) -> "AssessmentSession":
        return replace(self, labs=update_lab_value(self.labs, day, marker, value))

    def with_treatment(self, treatment: TreatmentPlan) -> "AssessmentSession":
        return replace(self, treatment=treatment)

    def _reevaluate(self) -> "AssessmentSession":
        diagnosis = self.engine.evaluate(self.findings, self.context)
        logger.debug(
            "Re-evaluated session for MRN %s: %s (%.0f%%)",
            self.demographics.mrn or "-", diagnosis.status.value, diagnosis.probability,
        )
        return replace(self, diagnosis=diagnosis)

    def summary(self) -> dict:
        """JSON-ready view of the session for display."""
        return {
            "patient": self.demographics.to_dict(),
            "context": self.context.to_dict(),
            "diagnosis": self.diagnosis.to_dict(),
            "symptoms": self.findings.symptoms.present(),
            "abnormal_results": [
                {"panel": panel, "test": row.name, "result": row.result, "flag": flag}
                for panel, row, flag in self.findings.abnormal_results()
            ],
            "elevated_markers": [
                {"day": day, "marker": marker, "value": value}
                for day, marker, value in elevated_markers(self.labs)
            ],
            "treatment": self.treatment.to_dict(),
        }
