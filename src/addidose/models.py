"""
Patient data model for AddiDose.

- PatientRecord: one clinical observation (labs, symptoms, QoL, medication notes).
- CurrentTherapy: cortisone acetate split plus fludrocortisone.
- PatientProfile: demographics, therapy history and the derived ResponsePattern.
Safe handling of missing inputs: every lab value is Optional and None means "not measured".
"""
from dataclasses import dataclass, field, asdict, fields, replace
from typing import Any, Dict, List, Optional, Tuple


def safe_num(x: Any) -> Optional[float]:
    """Convert input to float if possible; return None for empty/invalid."""
    try:
        if x is None or isinstance(x, bool):
            return None
        if isinstance(x, (int, float)):
            return float(x)
        s = str(x).strip().replace(",", ".")
        if s == "":
            return None
        return float(s)
    except (TypeError, ValueError):
        return None


def safe_int(x: Any) -> Optional[int]:
    n = safe_num(x)
    return None if n is None else int(n)


def truthy_flag(x: Any) -> bool:
    """Interpret checkbox/CSV values ("on", "1", "sì", True...) as a boolean flag."""
    if isinstance(x, str):
        return x.strip().lower() in ("1", "yes", "y", "true", "on", "si", "sì")
    return x in (1, True)


QOL_FIELDS = (
    "fatigue",
    "mood_changes",
    "work_capacity",
    "social_life",
    "sleep_quality",
    "physical_appearance",
    "overall_wellbeing",
    "treatment_satisfaction",
)

LAB_FIELDS = (
    "na",
    "k",
    "acth",
    "cortisol",
    "cortisol_urinary_24h",
    "cortisol_post_90min",
    "renin",
    "bp_sup_sys",
    "bp_sup_dia",
    "bp_orth_sys",
    "bp_orth_dia",
    "glucose",
)

FLAG_FIELDS = ("hypoglycemia", "crave_salt", "vertigo")

TEXT_FIELDS = ("glucocorticoid_dose", "florinef_dose", "other_medications")


@dataclass(frozen=True)
class PatientRecord:
    date: str
    na: Optional[float] = None
    k: Optional[float] = None
    acth: Optional[float] = None
    cortisol: Optional[float] = None
    cortisol_urinary_24h: Optional[float] = None
    cortisol_post_90min: Optional[float] = None   # dosed 1.5h after the tablet
    renin: Optional[float] = None
    bp_sup_sys: Optional[float] = None
    bp_sup_dia: Optional[float] = None
    bp_orth_sys: Optional[float] = None
    bp_orth_dia: Optional[float] = None
    glucose: Optional[float] = None
    hypoglycemia: bool = False
    crave_salt: bool = False
    vertigo: bool = False
    glucocorticoid_dose: Optional[str] = None
    florinef_dose: Optional[str] = None
    other_medications: Optional[str] = None
    # AddiQoL-inspired sub-scores, 1 (worst) .. 5 (best) except fatigue where 5 = exhausted
    fatigue: Optional[int] = None
    mood_changes: Optional[int] = None
    work_capacity: Optional[int] = None
    social_life: Optional[int] = None
    sleep_quality: Optional[int] = None
    physical_appearance: Optional[int] = None
    overall_wellbeing: Optional[int] = None
    treatment_satisfaction: Optional[int] = None

    def qol_scores(self) -> List[int]:
        return [getattr(self, f) for f in QOL_FIELDS if getattr(self, f) is not None]

    def average_qol(self) -> Optional[float]:
        scores = self.qol_scores()
        if not scores:
            return None
        return sum(scores) / len(scores)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatientRecord":
        """Build a record from loosely typed input (form values, CSV rows, JSON)."""
        kwargs: Dict[str, Any] = {"date": str(data.get("date") or "")}
        for name in LAB_FIELDS:
            kwargs[name] = safe_num(data.get(name))
        for name in FLAG_FIELDS:
            kwargs[name] = truthy_flag(data.get(name))
        for name in TEXT_FIELDS:
            value = data.get(name)
            kwargs[name] = str(value).strip() if value not in (None, "") else None
        for name in QOL_FIELDS:
            kwargs[name] = safe_int(data.get(name))
        return cls(**kwargs)


@dataclass(frozen=True)
class CurrentTherapy:
    """Cortisone acetate doses (mg) by time of day plus Florinef (mg)."""
    morning: float = 18.75
    midday: float = 6.25
    evening: float = 6.25
    florinef: float = 0.1

    @property
    def total(self) -> float:
        return self.morning + self.midday + self.evening

    @property
    def administrations(self) -> int:
        return 3 if self.evening > 0 else 2

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurrentTherapy":
        defaults = cls()
        values = {}
        for f in fields(cls):
            n = safe_num(data.get(f.name))
            values[f.name] = getattr(defaults, f.name) if n is None else n
        return cls(**values)


EFFECTIVENESS_SCORES = {"excellent": 4, "good": 3, "fair": 2, "poor": 1}


@dataclass
class TherapyHistoryEntry:
    date: str
    therapy: CurrentTherapy
    duration: int = 30  # days
    reason: str = ""
    prescriber: str = ""
    effectiveness: Optional[str] = None  # excellent | good | fair | poor
    side_effects: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["therapy"] = self.therapy.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TherapyHistoryEntry":
        effectiveness = data.get("effectiveness")
        if effectiveness not in EFFECTIVENESS_SCORES:
            effectiveness = None
        return cls(
            date=str(data.get("date", "")),
            therapy=CurrentTherapy.from_dict(data.get("therapy") or {}),
            duration=safe_int(data.get("duration")) or 30,
            reason=str(data.get("reason", "")),
            prescriber=str(data.get("prescriber", "")),
            effectiveness=effectiveness,
            side_effects=list(data.get("side_effects") or []),
        )


@dataclass
class ResponsePattern:
    cortisone_to_acth: float = 0.0      # personal correlation, -1..1
    optimal_distribution: Tuple[int, int, int] = (40, 30, 30)  # % morning/midday/evening
    stress_response: str = "normal"     # high | normal | low
    average_qol: float = 50.0
    stability_score: float = 50.0       # 0..100
    dose_response_slope: float = 0.5   # mg per pg/mL of ACTH gap

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["optimal_distribution"] = list(self.optimal_distribution)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResponsePattern":
        defaults = cls()
        num = lambda k: safe_num(data.get(k)) if safe_num(data.get(k)) is not None else getattr(defaults, k)
        dist = data.get("optimal_distribution") or defaults.optimal_distribution
        return cls(
            cortisone_to_acth=num("cortisone_to_acth"),
            optimal_distribution=tuple(int(x) for x in dist),
            stress_response=data.get("stress_response") or "normal",
            average_qol=num("average_qol"),
            stability_score=num("stability_score"),
            dose_response_slope=num("dose_response_slope"),
        )


@dataclass
class PatientDemographics:
    age: int = 40
    weight: float = 70.0
    height: float = 170.0
    sex: str = "M"
    diagnosis: str = "Malattia di Addison"
    diagnosis_date: str = ""
    comorbidities: List[str] = field(default_factory=list)

    @property
    def bmi(self) -> Optional[float]:
        if not self.height or not self.weight:
            return None
        meters = self.height / 100
        return self.weight / (meters * meters)


@dataclass
class PatientProfile:
    id: str
    first_name: str
    last_name: str
    date_of_birth: str = ""
    demographics: PatientDemographics = field(default_factory=PatientDemographics)
    therapy_history: List[TherapyHistoryEntry] = field(default_factory=list)
    response_patterns: ResponsePattern = field(default_factory=ResponsePattern)
    notes: List[str] = field(default_factory=list)
    last_updated: str = ""
    risk_factors: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def matches(self, term: str) -> bool:
        """Case-insensitive search on name and diagnosis."""
        term = term.lower()
        return term in self.full_name.lower() or term in self.demographics.diagnosis.lower()

    def with_history(self, history: List[TherapyHistoryEntry], patterns: ResponsePattern) -> "PatientProfile":
        return replace(self, therapy_history=history, response_patterns=patterns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth,
            "demographics": asdict(self.demographics),
            "therapy_history": [h.to_dict() for h in self.therapy_history],
            "response_patterns": self.response_patterns.to_dict(),
            "notes": list(self.notes),
            "last_updated": self.last_updated,
            "risk_factors": list(self.risk_factors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatientProfile":
        demo = data.get("demographics") or {}
        defaults = PatientDemographics()
        demographics = PatientDemographics(
            age=safe_int(demo.get("age")) or defaults.age,
            weight=safe_num(demo.get("weight")) or defaults.weight,
            height=safe_num(demo.get("height")) or defaults.height,
            sex=demo.get("sex") or defaults.sex,
            diagnosis=demo.get("diagnosis") or defaults.diagnosis,
            diagnosis_date=demo.get("diagnosis_date") or "",
            comorbidities=list(demo.get("comorbidities") or []),
        )
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            date_of_birth=data.get("date_of_birth", ""),
            demographics=demographics,
            therapy_history=[TherapyHistoryEntry.from_dict(h) for h in data.get("therapy_history") or []],
            response_patterns=ResponsePattern.from_dict(data.get("response_patterns") or {}),
            notes=list(data.get("notes") or []),
            last_updated=data.get("last_updated", ""),
            risk_factors=list(data.get("risk_factors") or []),
        )
