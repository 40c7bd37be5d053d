"""PJI Risk Assessment Module.

Scores periprosthetic joint infection risk around hip and knee implants
from the findings entered during an assessment session, and suggests a
static antibiotic regimen for the identified pathogen.
"""

from .models import (
    ImplantType,
    ImplantNature,
    PathogenCategory,
    ResistanceProfile,
    PatientDemographics,
    LabResult,
    TreatmentPlan,
)
from .rules import ClinicalFindings, PatientContext, Diagnosis, PJIRulesEngine, evaluate_pji
from .session import AssessmentSession
from .treatment import infer_pathogen, recommend_treatment

__all__ = [
    "ImplantType",
    "ImplantNature",
    "PathogenCategory",
    "ResistanceProfile",
    "PatientDemographics",
    "LabResult",
    "TreatmentPlan",
    "ClinicalFindings",
    "PatientContext",
    "Diagnosis",
    "PJIRulesEngine",
    "evaluate_pji",
    "AssessmentSession",
    "infer_pathogen",
    "recommend_treatment",
]
