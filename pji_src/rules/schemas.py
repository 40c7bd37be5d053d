"""Schemas for the PJI rules engine.

This module defines:
- ClinicalFindings: What the operator has entered on the assessment form
- PatientContext: Side input derived from the patient record (acute/chronic)
- Diagnosis: Output of the rules engine

Records validate their own structure at construction. A malformed record
is a caller bug and fails loudly here, never inside the engine.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum

from .pji_criteria import ACUTE_WINDOW_DAYS, classify_result, is_acute_infection


class CultureStatus(str, Enum):
    """Result of a single periprosthetic tissue/fluid culture sample."""
    NEGATIVE = "negative"
    POSITIVE = "positive"


class AlphaDefensinResult(str, Enum):
    """Synovial alpha-defensin lateral flow / ELISA result."""
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    TRACE = "Trace"


class LeukocyteEsteraseResult(str, Enum):
    """Synovial leukocyte esterase strip reading."""
    NEGATIVE = "Negative"
    ONE_PLUS = "1+"
    TWO_PLUS = "2+"
    THREE_PLUS = "3+"


class DiagnosisStatus(str, Enum):
    """Final classification from the rules engine."""
    INFECTED = "Infected"
    INCONCLUSIVE = "Inconclusive"
    NOT_INFECTED = "Not Infected"


def _require_bool(owner: str, name: str, value) -> None:
    if not isinstance(value, bool):
        raise ValueError(f"{owner}.{name} must be true or false, got {value!r}")


def _require_number(owner: str, name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{owner}.{name} must be a number, got {value!r}")


# ============================================================================
# Findings - what the operator enters
# ============================================================================

@dataclass
class MajorCriteria:
    """Major criteria checkboxes on the assessment form."""
    sinus_tract: bool = False
    two_positive_cultures: bool = False

    def __post_init__(self):
        for name, value in self.to_dict().items():
            _require_bool("major_criteria", name, value)

    def to_dict(self) -> dict:
        return {
            "sinus_tract": self.sinus_tract,
            "two_positive_cultures": self.two_positive_cultures,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "MajorCriteria":
        data = data or {}
        return cls(
            sinus_tract=data.get("sinus_tract", False),
            two_positive_cultures=data.get("two_positive_cultures", False),
        )


@dataclass
class SymptomFindings:
    """Local and systemic signs recorded at presentation.

    Only sinus_tract takes part in scoring; the rest are collected for the
    clinical record.
    """
    fever: bool = False
    sinus_tract: bool = False
    erythema: bool = False
    pain: bool = False
    swelling: bool = False
    drainage: bool = False
    purulence: bool = False

    def __post_init__(self):
        for name, value in self.to_dict().items():
            _require_bool("symptoms", name, value)

    def present(self) -> list[str]:
        """Names of the symptoms that are checked, in form order."""
        return [name for name, value in self.to_dict().items() if value]

    def to_dict(self) -> dict:
        return {
            "fever": self.fever,
            "sinus_tract": self.sinus_tract,
            "erythema": self.erythema,
            "pain": self.pain,
            "swelling": self.swelling,
            "drainage": self.drainage,
            "purulence": self.purulence,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "SymptomFindings":
        data = data or {}
        return cls(**{name: data.get(name, False) for name in cls().to_dict()})


@dataclass
class CultureSample:
    """One numbered culture sample.

    The organism name is only recorded for positive samples.
    """
    sample_number: int
    status: CultureStatus = CultureStatus.NEGATIVE
    bacteria_name: str = ""

    def __post_init__(self):
        self.status = CultureStatus(self.status)
        if isinstance(self.sample_number, bool) or not isinstance(self.sample_number, int):
            raise ValueError(f"sample_number must be an integer, got {self.sample_number!r}")
        if self.sample_number < 1:
            raise ValueError(f"sample_number must be positive, got {self.sample_number}")
        if self.bacteria_name and self.status != CultureStatus.POSITIVE:
            raise ValueError(
                f"Sample {self.sample_number}: bacteria_name is only allowed on positive samples"
            )

    @property
    def has_identified_organism(self) -> bool:
        return self.status == CultureStatus.POSITIVE and self.bacteria_name.strip() != ""

    def to_dict(self) -> dict:
        return {
            "sample_number": self.sample_number,
            "status": self.status.value,
            "bacteria_name": self.bacteria_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CultureSample":
        return cls(
            sample_number=data.get("sample_number"),
            status=CultureStatus(data.get("status", "negative")),
            bacteria_name=data.get("bacteria_name") or "",
        )


@dataclass
class SynovialFluidAnalysis:
    """Joint aspirate results. Any field may still be pending."""
    wbc_count: float | None = None  # cells/microL
    pmn_percent: float | None = None
    alpha_defensin: AlphaDefensinResult | None = None
    leukocyte_esterase: LeukocyteEsteraseResult | None = None

    def __post_init__(self):
        if self.wbc_count is not None:
            _require_number("synovial_fluid", "wbc_count", self.wbc_count)
        if self.pmn_percent is not None:
            _require_number("synovial_fluid", "pmn_percent", self.pmn_percent)
        if self.wbc_count is not None and self.wbc_count < 0:
            raise ValueError(f"wbc_count must be non-negative, got {self.wbc_count}")
        if self.pmn_percent is not None and not 0 <= self.pmn_percent <= 100:
            raise ValueError(f"pmn_percent must be between 0 and 100, got {self.pmn_percent}")
        if self.alpha_defensin is not None:
            self.alpha_defensin = AlphaDefensinResult(self.alpha_defensin)
        if self.leukocyte_esterase is not None:
            self.leukocyte_esterase = LeukocyteEsteraseResult(self.leukocyte_esterase)

    def to_dict(self) -> dict:
        return {
            "wbc_count": self.wbc_count,
            "pmn_percent": self.pmn_percent,
            "alpha_defensin": self.alpha_defensin.value if self.alpha_defensin else None,
            "leukocyte_esterase": self.leukocyte_esterase.value if self.leukocyte_esterase else None,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "SynovialFluidAnalysis | None":
        if data is None:
            return None
        alpha = data.get("alpha_defensin")
        esterase = data.get("leukocyte_esterase")
        return cls(
            wbc_count=data.get("wbc_count"),
            pmn_percent=data.get("pmn_percent"),
            alpha_defensin=AlphaDefensinResult(alpha) if alpha else None,
            leukocyte_esterase=LeukocyteEsteraseResult(esterase) if esterase else None,
        )


@dataclass
class LabTestRow:
    """A single row of a laboratory panel, as typed by the operator."""
    name: str
    result: str = ""
    normal_range: str = ""
    unit: str = ""

    @property
    def flag(self) -> str | None:
        """Reference-range flag ("L" or "H"); None when in range or unparseable."""
        return classify_result(self.result, self.normal_range)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "result": self.result,
            "normal_range": self.normal_range,
            "unit": self.unit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LabTestRow":
        result = data.get("result")
        return cls(
            name=data.get("name", ""),
            result="" if result is None else str(result),
            normal_range=data.get("normal_range", ""),
            unit=data.get("unit", ""),
        )


def default_laboratory_panels() -> dict[str, list[LabTestRow]]:
    """Blank laboratory panels with their reference ranges."""
    return {
        "hematology": [
            LabTestRow("WBC", normal_range="", unit="cells/HPF"),
            LabTestRow("%NEUT", normal_range="40 - 74", unit="%"),
            LabTestRow("ESR", normal_range="< 10", unit="mm/hr"),
        ],
        "biochemistry": [
            LabTestRow("CRP", normal_range="0 - 5", unit="mg/L"),
            LabTestRow("D-Dimer", normal_range="< 0.5", unit="ug/mL"),
            LabTestRow("Alpha Defensin", normal_range="< 5.2", unit="ug/mL"),
        ],
        "synovial_fluid": [
            LabTestRow("Leukocyte Esterase", unit="cells/uL"),
            LabTestRow("Synovial WBC", unit="cells/HPF"),
            LabTestRow("Synovial %NEUT", unit="%"),
            LabTestRow("Synovial CRP", unit="mg/L"),
        ],
        "microbiology": [
            LabTestRow("Culture", unit="CFU/mL"),
            LabTestRow("Gram stain"),
        ],
        "other": [
            LabTestRow("Glucose", normal_range="4.1 - 5.6", unit="mmol/L"),
            LabTestRow("Urea", normal_range="2.8 - 7.2", unit="mmol/L"),
            LabTestRow("Creatinine", normal_range="59 - 104", unit="umol/L"),
            LabTestRow("Albumin", normal_range="35 - 52", unit="g/L"),
            LabTestRow("Total protein", normal_range="66 - 83", unit="g/L"),
            LabTestRow("Na+", normal_range="135 - 145", unit="mmol/L"),
            LabTestRow("K+", normal_range="3.5 - 5.0", unit="mmol/L"),
            LabTestRow("Cl-", unit="mmol/L"),
            LabTestRow("Total calcium", normal_range="2.2 - 2.65", unit="mmol/L"),
            LabTestRow("HbA1c", normal_range="4 - 6.2", unit="%"),
        ],
    }


DEFAULT_CULTURE_SAMPLE_COUNT = 5


@dataclass
class ClinicalFindings:
    """Everything the rules engine reads about the current case.

    Treat instances as values: the with_* helpers return updated copies.
    """
    major_criteria: MajorCriteria = field(default_factory=MajorCriteria)
    symptoms: SymptomFindings = field(default_factory=SymptomFindings)
    culture_samples: list[CultureSample] = field(default_factory=list)
    synovial_fluid: SynovialFluidAnalysis | None = None
    laboratory_panels: dict[str, list[LabTestRow]] = field(default_factory=dict)
    imaging_description: str = ""

    def __post_init__(self):
        seen = set()
        for sample in self.culture_samples:
            if sample.sample_number in seen:
                raise ValueError(f"Duplicate culture sample_number {sample.sample_number}")
            seen.add(sample.sample_number)

    @classmethod
    def default(cls) -> "ClinicalFindings":
        """Blank assessment form: five negative samples and the standard panels."""
        return cls(
            culture_samples=[
                CultureSample(sample_number=n)
                for n in range(1, DEFAULT_CULTURE_SAMPLE_COUNT + 1)
            ],
            laboratory_panels=default_laboratory_panels(),
        )

    def positive_cultures(self) -> list[CultureSample]:
        """Positive samples with an identified organism, in sample order."""
        return [s for s in self.culture_samples if s.has_identified_organism]

    def abnormal_results(self) -> list[tuple[str, LabTestRow, str]]:
        """(panel, row, flag) for every row flagged L or H."""
        flagged = []
        for panel_name, rows in self.laboratory_panels.items():
            for row in rows:
                flag = row.flag
                if flag:
                    flagged.append((panel_name, row, flag))
        return flagged

    def with_culture_result(
        self,
        sample_number: int,
        status: CultureStatus | str,
        bacteria_name: str = "",
    ) -> "ClinicalFindings":
        """Return a copy with one culture sample updated.

        Switching a sample to negative clears its organism. An unknown
        sample number appends a new sample.
        """
        status = CultureStatus(status)
        if status == CultureStatus.NEGATIVE:
            bacteria_name = ""
        updated = CultureSample(sample_number, status, bacteria_name)

        samples = []
        replaced = False
        for sample in self.culture_samples:
            if sample.sample_number == sample_number:
                samples.append(updated)
                replaced = True
            else:
                samples.append(sample)
        if not replaced:
            samples.append(updated)
        return replace(self, culture_samples=samples)

    def with_lab_result(self, panel: str, test_name: str, result: str) -> "ClinicalFindings":
        """Return a copy with one lab row's result replaced.

        Raises:
            ValueError: If the panel or test does not exist
        """
        if panel not in self.laboratory_panels:
            raise ValueError(f"Unknown laboratory panel: {panel}")
        rows = self.laboratory_panels[panel]
        if not any(row.name == test_name for row in rows):
            raise ValueError(f"Unknown test {test_name!r} in panel {panel}")

        panels = dict(self.laboratory_panels)
        panels[panel] = [
            replace(row, result=result) if row.name == test_name else row
            for row in rows
        ]
        return replace(self, laboratory_panels=panels)

    def to_dict(self) -> dict:
        return {
            "major_criteria": self.major_criteria.to_dict(),
            "symptoms": self.symptoms.to_dict(),
            "culture_samples": [s.to_dict() for s in self.culture_samples],
            "synovial_fluid": self.synovial_fluid.to_dict() if self.synovial_fluid else None,
            "laboratory_panels": {
                name: [row.to_dict() for row in rows]
                for name, rows in self.laboratory_panels.items()
            },
            "imaging_description": self.imaging_description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClinicalFindings":
        return cls(
            major_criteria=MajorCriteria.from_dict(data.get("major_criteria")),
            symptoms=SymptomFindings.from_dict(data.get("symptoms")),
            culture_samples=[
                CultureSample.from_dict(s) for s in data.get("culture_samples", [])
            ],
            synovial_fluid=SynovialFluidAnalysis.from_dict(data.get("synovial_fluid")),
            laboratory_panels={
                name: [LabTestRow.from_dict(row) for row in rows]
                for name, rows in (data.get("laboratory_panels") or {}).items()
            },
            imaging_description=data.get("imaging_description", ""),
        )


# ============================================================================
# Context and result
# ============================================================================

@dataclass(frozen=True)
class PatientContext:
    """Patient-level side input to the rules engine."""
    is_acute_infection: bool = False

    def __post_init__(self):
        _require_bool("context", "is_acute_infection", self.is_acute_infection)

    @classmethod
    def from_dates(
        cls,
        surgery_date: date | datetime | None,
        symptom_date: date | datetime | None,
        window_days: int = ACUTE_WINDOW_DAYS,
    ) -> "PatientContext":
        """Acute if symptoms began within window_days of the index surgery."""
        return cls(is_acute_infection=is_acute_infection(surgery_date, symptom_date, window_days))

    def to_dict(self) -> dict:
        return {"is_acute_infection": self.is_acute_infection}

    @classmethod
    def from_dict(cls, data: dict | None) -> "PatientContext":
        data = data or {}
        return cls(is_acute_infection=data.get("is_acute_infection", False))


@dataclass
class Diagnosis:
    """Output of the PJI rules engine.

    reasoning lists the criteria that fired, in evaluation order.
    """
    score: int
    probability: float  # 0 to 100
    status: DiagnosisStatus
    reasoning: list[str] = field(default_factory=list)

    @classmethod
    def pending(cls) -> "Diagnosis":
        """Placeholder shown before the first evaluation."""
        return cls(score=0, probability=0.0, status=DiagnosisStatus.INCONCLUSIVE, reasoning=[])

    @property
    def is_infected(self) -> bool:
        return self.status == DiagnosisStatus.INFECTED

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "probability": self.probability,
            "status": self.status.value,
            "reasoning": list(self.reasoning),
        }
