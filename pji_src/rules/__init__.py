"""PJI rules engine for periprosthetic joint infection scoring.

This module provides deterministic diagnostic logic based on the PJI
criteria table. The rules engine takes the findings entered on the
assessment form and applies the criteria to produce a diagnosis.

Architecture:
    Assessment form -> ClinicalFindings -> Rules Engine -> Diagnosis
"""

from .schemas import (
    CultureStatus,
    AlphaDefensinResult,
    LeukocyteEsteraseResult,
    DiagnosisStatus,
    MajorCriteria,
    SymptomFindings,
    CultureSample,
    SynovialFluidAnalysis,
    LabTestRow,
    ClinicalFindings,
    PatientContext,
    Diagnosis,
)
from .pji_criteria import (
    MinorCriterion,
    MINOR_CRITERIA,
    build_minor_criteria,
    classify_result,
    is_acute_infection,
)
from .pji_engine import PJIRulesEngine, evaluate_pji

__all__ = [
    # Schemas
    "CultureStatus",
    "AlphaDefensinResult",
    "LeukocyteEsteraseResult",
    "DiagnosisStatus",
    "MajorCriteria",
    "SymptomFindings",
    "CultureSample",
    "SynovialFluidAnalysis",
    "LabTestRow",
    "ClinicalFindings",
    "PatientContext",
    "Diagnosis",
    # Criteria
    "MinorCriterion",
    "MINOR_CRITERIA",
    "build_minor_criteria",
    "classify_result",
    "is_acute_infection",
    # Engine
    "PJIRulesEngine",
    "evaluate_pji",
]
