"""
Dosing-schedule selection for immediate-release cortisone acetate.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from .therapy import distribute_dose_in_quarters

TWO_DOSE_TIMINGS = ["07:30", "12:30"]
THREE_DOSE_TIMINGS = ["07:30", "12:30", "17:30"]


@dataclass
class SymptomProfile:
    morning_fatigue: bool = False
    afternoon_fatigue: bool = False
    evening_fatigue: bool = False
    sleep_disturbance: bool = False
    night_symptoms: bool = False


@dataclass
class DosingSchedule:
    schedule: str          # two_dose | three_dose
    timings: List[str]
    doses: List[float]
    rationale: str
    optimization_factors: List[str] = field(default_factory=list)

    @property
    def morning(self) -> float:
        return self.doses[0]

    @property
    def midday(self) -> float:
        return self.doses[1]

    @property
    def evening(self) -> float:
        return self.doses[2] if len(self.doses) > 2 else 0.0


def select_optimal_dosing_schedule(dose: float, symptoms: SymptomProfile,
                                   qol_score: Optional[float] = None) -> DosingSchedule:
    """
    dose <= 25mg: two administrations, 70/30 with morning fatigue else 67/33.
    dose > 25mg: three administrations, 45/35/20 with afternoon/evening fatigue else 50/30/20.
    Doses are rounded to 0.25mg and sum to the rounded total.
    """
    factors: List[str] = []

    if dose <= 25:
        factors.append("Dose ≤25mg: schema a 2 somministrazioni riduce esposizione complessiva")
        if symptoms.morning_fatigue:
            factors.append("Astenia mattutina: aumentare quota mattutina al 70%")
            ratios, rationale = [0.70, 0.30], "Schema 70/30 per astenia mattutina"
        else:
            ratios, rationale = [0.67, 0.33], "Schema standard 67/33 per dosi moderate"
        return DosingSchedule("two_dose", list(TWO_DOSE_TIMINGS),
                              distribute_dose_in_quarters(dose, ratios), rationale, factors)

    factors.append("Dose >25mg: tripla somministrazione per migliore copertura")
    if symptoms.afternoon_fatigue or symptoms.evening_fatigue:
        factors.append("Astenia pomeridiana/serale: aumentare dosi pomeridiane")
        ratios, rationale = [0.45, 0.35, 0.20], "Schema 45/35/20 per supporto pomeridiano"
    else:
        ratios, rationale = [0.50, 0.30, 0.20], "Schema standard 50/30/20"
    if symptoms.sleep_disturbance:
        factors.append("Disturbi del sonno: evitare dosi dopo le 18:00")
    return DosingSchedule("three_dose", list(THREE_DOSE_TIMINGS),
                          distribute_dose_in_quarters(dose, ratios), rationale, factors)
