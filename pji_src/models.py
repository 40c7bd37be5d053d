"""Domain models for the PJI assessment module.

All models use dataclasses. This module contains the patient record, the
serial inflammatory marker values and the treatment plan that surround the
rules engine during an assessment session.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .config import Config
from .rules.pji_criteria import is_acute_infection
from .rules.schemas import PatientContext


class ImplantType(Enum):
    """Arthroplasty type."""
    THA = "THA"  # Total hip arthroplasty
    TKA = "TKA"  # Total knee arthroplasty


class ImplantNature(Enum):
    """Whether the index surgery was a first implant or a revision."""
    PRIMARY = "Primary"
    REVISION = "Revision"


class PathogenCategory(Enum):
    """Organism grouping used to pick an antibiotic regimen."""
    MRSA = "mrsa"
    MSSA = "mssa"
    CULTURE_NEGATIVE = "culture_negative"


class ResistanceProfile(Enum):
    """Resistance pattern reported with the susceptibility panel."""
    VANCOMYCIN_INTERMEDIATE = "vancomycin"  # VISA
    NONE = "none"                           # Fully susceptible


COMORBIDITY_LABELS = {
    "diabetes": "Diabetes mellitus",
    "smoking": "Active smoker",
    "immunosuppression": "Immunosuppression",
    "prior_infection": "Prior joint infection",
    "malnutrition": "Malnutrition",
    "liver_disease": "Liver disease",
}

RELATED_CHARACTERISTICS = ("allergy", "drugs", "alcohol", "smoking", "other")


def _parse_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass
class Comorbidities:
    """Host risk factors for PJI."""
    diabetes: bool = False
    smoking: bool = False
    immunosuppression: bool = False
    prior_infection: bool = False
    malnutrition: bool = False
    liver_disease: bool = False

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in COMORBIDITY_LABELS}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Comorbidities":
        data = data or {}
        return cls(**{name: bool(data.get(name, False)) for name in COMORBIDITY_LABELS})


@dataclass
class RelatedCharacteristic:
    """A checkbox plus free-text note (allergy, drugs, alcohol...)."""
    checked: bool = False
    note: str = ""

    def to_dict(self) -> dict:
        return {"checked": self.checked, "note": self.note}


@dataclass
class SurgicalHistoryEntry:
    """One prior operation on the affected joint."""
    id: str
    surgery_date: date | None = None
    procedure: str = ""
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "surgery_date": self.surgery_date.isoformat() if self.surgery_date else None,
            "procedure": self.procedure,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SurgicalHistoryEntry":
        return cls(
            id=str(data.get("id", "")),
            surgery_date=_parse_date(data.get("surgery_date")),
            procedure=data.get("procedure", ""),
            notes=data.get("notes", ""),
        )


@dataclass
class PatientDemographics:
    """Patient intake record.

    The acute/chronic classification and BMI are derived, never stored, so
    they cannot drift from the dates and measurements they come from.
    """
    id: str
    name: str
    mrn: str
    dob: date | None = None
    gender: str = ""
    phone: str = ""
    address: str = ""
    height_cm: float = 0.0
    weight_kg: float = 0.0
    surgery_date: date | None = None
    symptom_date: date | None = None
    implant_type: ImplantType = ImplantType.TKA
    fixation_type: str = "cemented"
    implant_nature: ImplantNature = ImplantNature.PRIMARY
    comorbidities: Comorbidities = field(default_factory=Comorbidities)
    medical_history: str = ""
    past_medical_history: str = ""
    related_characteristics: dict[str, RelatedCharacteristic] = field(
        default_factory=lambda: {name: RelatedCharacteristic() for name in RELATED_CHARACTERISTICS}
    )
    surgical_history: list[SurgicalHistoryEntry] = field(default_factory=list)

    @property
    def bmi(self) -> float:
        """Body mass index rounded to one decimal; 0.0 if not measurable."""
        if self.height_cm > 0 and self.weight_kg > 0:
            height_m = self.height_cm / 100
            return round(self.weight_kg / (height_m * height_m), 1)
        return 0.0

    @property
    def is_acute(self) -> bool:
        return is_acute_infection(self.surgery_date, self.symptom_date, Config.ACUTE_WINDOW_DAYS)

    def context(self, window_days: int | None = None) -> PatientContext:
        """Build the rules engine side input for this patient.

        window_days defaults to the configured ACUTE_WINDOW_DAYS.
        """
        if window_days is None:
            window_days = Config.ACUTE_WINDOW_DAYS
        return PatientContext.from_dates(self.surgery_date, self.symptom_date, window_days)

    def risk_factors(self) -> list[str]:
        """Display labels of the comorbidities that are set."""
        flags = self.comorbidities.to_dict()
        return [label for name, label in COMORBIDITY_LABELS.items() if flags[name]]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "mrn": self.mrn,
            "dob": self.dob.isoformat() if self.dob else None,
            "gender": self.gender,
            "phone": self.phone,
            "address": self.address,
            "height_cm": self.height_cm,
            "weight_kg": self.weight_kg,
            "bmi": self.bmi,
            "surgery_date": self.surgery_date.isoformat() if self.surgery_date else None,
            "symptom_date": self.symptom_date.isoformat() if self.symptom_date else None,
            "is_acute": self.is_acute,
            "implant_type": self.implant_type.value,
            "fixation_type": self.fixation_type,
            "implant_nature": self.implant_nature.value,
            "comorbidities": self.comorbidities.to_dict(),
            "medical_history": self.medical_history,
            "past_medical_history": self.past_medical_history,
            "related_characteristics": {
                name: item.to_dict() for name, item in self.related_characteristics.items()
            },
            "surgical_history": [entry.to_dict() for entry in self.surgical_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PatientDemographics":
        related = data.get("related_characteristics") or {}
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            mrn=str(data.get("mrn", "")),
            dob=_parse_date(data.get("dob")),
            gender=data.get("gender", ""),
            phone=data.get("phone", ""),
            address=data.get("address", ""),
            height_cm=float(data.get("height_cm") or 0),
            weight_kg=float(data.get("weight_kg") or 0),
            surgery_date=_parse_date(data.get("surgery_date")),
            symptom_date=_parse_date(data.get("symptom_date")),
            implant_type=ImplantType(data.get("implant_type", "TKA")),
            fixation_type=data.get("fixation_type", "cemented"),
            implant_nature=ImplantNature(data.get("implant_nature", "Primary")),
            comorbidities=Comorbidities.from_dict(data.get("comorbidities")),
            medical_history=data.get("medical_history", ""),
            past_medical_history=data.get("past_medical_history", ""),
            related_characteristics={
                name: RelatedCharacteristic(
                    checked=bool((related.get(name) or {}).get("checked", False)),
                    note=(related.get(name) or {}).get("note", ""),
                )
                for name in RELATED_CHARACTERISTICS
            },
            surgical_history=[
                SurgicalHistoryEntry.from_dict(entry)
                for entry in data.get("surgical_history", [])
            ],
        )


@dataclass
class LabResult:
    """Serum inflammatory markers for one time point."""
    day: str  # Pre-Op, Day 1, Day 3, Day 7
    wbc: float | None = None  # 10^9/L
    neu: float | None = None  # %
    esr: float | None = None  # mm/hr
    crp: float | None = None  # mg/L

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "wbc": self.wbc,
            "neu": self.neu,
            "esr": self.esr,
            "crp": self.crp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LabResult":
        return cls(
            day=data["day"],
            wbc=data.get("wbc"),
            neu=data.get("neu"),
            esr=data.get("esr"),
            crp=data.get("crp"),
        )


@dataclass
class TreatmentPlan:
    """Suggested antibiotic regimen.

    The citation is pre-authored guideline text, not a live lookup.
    """
    pathogen: PathogenCategory
    resistance: ResistanceProfile
    iv_drug: str
    iv_dosage: str
    iv_duration: str
    oral_drug: str
    oral_dosage: str
    oral_duration: str
    citation: str
    confidence: int  # percent

    def to_dict(self) -> dict:
        return {
            "pathogen": self.pathogen.value,
            "resistance": self.resistance.value,
            "iv_drug": self.iv_drug,
            "iv_dosage": self.iv_dosage,
            "iv_duration": self.iv_duration,
            "oral_drug": self.oral_drug,
            "oral_dosage": self.oral_dosage,
            "oral_duration": self.oral_duration,
            "citation": self.citation,
            "confidence": self.confidence,
        }
