"""Antibiotic regimen suggestions for PJI.

Maps the identified pathogen group and resistance profile to a static,
pre-authored regimen. The citation text ships with the table; nothing is
retrieved at runtime.
"""

import logging

from .config import config
from .models import PathogenCategory, ResistanceProfile, TreatmentPlan
from .rules.schemas import ClinicalFindings

logger = logging.getLogger(__name__)

# Organism name fragments (lowercase) used to group culture results
MRSA_MARKERS = ("mrsa", "methicillin-resistant", "methicillin resistant")
S_AUREUS_MARKERS = ("staphylococcus aureus", "staph aureus", "s. aureus", "s.aureus", "mssa")

REGIMENS = {
    PathogenCategory.MRSA: {
        "iv_drug": "Daptomycin",
        "iv_dosage": "6-8 mg/kg IV",
        "iv_duration": "2-4 weeks",
        "oral_drug": "Rifampin + Ciprofloxacin",
        "oral_dosage": "600 mg daily / 750 mg BID",
        "oral_duration": "3-6 weeks",
        "citation": (
            '"For MRSA PJI with a vancomycin MIC > 1.5 mcg/mL, daptomycin is the '
            "recommended primary IV agent to avoid treatment failure. Combination "
            'with rifampin is essential for biofilm penetration on retained hardware."'
        ),
    },
    PathogenCategory.MSSA: {
        "iv_drug": "Cefazolin",
        "iv_dosage": "2 g IV every 8 hours",
        "iv_duration": "2 weeks",
        "oral_drug": "Rifampin + Levofloxacin",
        "oral_dosage": "600 mg daily / 750 mg daily",
        "oral_duration": "3-6 weeks",
        "citation": (
            '"For MSSA PJI, cefazolin or nafcillin is the gold standard. Rifampin '
            'is added for its activity against biofilm."'
        ),
    },
}

# Used for culture-negative cases and organisms outside the table
BROAD_SPECTRUM_REGIMEN = {
    "iv_drug": "Vancomycin + Cefepime",
    "iv_dosage": "Broad-spectrum regimen",
    "iv_duration": "4-6 weeks",
    "oral_drug": "Await susceptibility results",
    "oral_dosage": "",
    "oral_duration": "",
    "citation": (
        '"For culture-negative PJI, broad-spectrum coverage including MRSA and '
        'Gram-negative organisms is required until an organism is identified."'
    ),
}


def infer_pathogen(findings: ClinicalFindings) -> PathogenCategory:
    """Group the positive culture organisms for regimen selection.

    MRSA wins over MSSA if both appear. Organisms outside the table fall
    back to the culture-negative (broad-spectrum) group.
    """
    organisms = [s.bacteria_name.lower() for s in findings.positive_cultures()]
    if any(marker in name for name in organisms for marker in MRSA_MARKERS):
        return PathogenCategory.MRSA
    if any(marker in name for name in organisms for marker in S_AUREUS_MARKERS):
        return PathogenCategory.MSSA
    if organisms:
        logger.info("No regimen for organisms %s - using broad-spectrum coverage", organisms)
    return PathogenCategory.CULTURE_NEGATIVE


def recommend_treatment(
    pathogen: PathogenCategory,
    resistance: ResistanceProfile = ResistanceProfile.NONE,
    confidence: int | None = None,
) -> TreatmentPlan:
    """Look up the regimen for a pathogen group.

    Args:
        pathogen: Organism grouping
        resistance: Resistance profile, carried through to the plan
        confidence: Displayed confidence; defaults to config value

    Returns:
        TreatmentPlan populated from the static regimen table.
    """
    regimen = REGIMENS.get(pathogen, BROAD_SPECTRUM_REGIMEN)
    if confidence is None:
        confidence = config.DEFAULT_TREATMENT_CONFIDENCE
    return TreatmentPlan(
        pathogen=pathogen,
        resistance=resistance,
        confidence=confidence,
        **regimen,
    )


def default_treatment() -> TreatmentPlan:
    """Initial plan shown before the operator picks a pathogen."""
    return recommend_treatment(PathogenCategory.MRSA, ResistanceProfile.VANCOMYCIN_INTERMEDIATE)
