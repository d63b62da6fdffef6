"""
Quarter-tablet arithmetic and therapy validation.

Cortisone acetate comes as 25mg tablets that may only be split in quarters
(6.25mg); auto-generated doses are rounded to 0.25mg.
"""
import math
from dataclasses import replace
from typing import List, Sequence

from . import config
from .models import CurrentTherapy


def round_half_up(x: float, grain: float) -> float:
    """Round to the nearest multiple of grain, halves going up (not banker's rounding)."""
    return math.floor(x / grain + 0.5) * grain


def round_to_quarter(dose: float) -> float:
    return round_half_up(dose, config.QUARTER_MG)


def clamp_gc_dose(dose: float) -> float:
    return max(config.MIN_GC_DOSE, min(config.MAX_GC_DOSE, dose))


def distribute_dose_in_quarters(total_dose: float, ratios: Sequence[float]) -> List[float]:
    """
    Split total_dose by ratios, each part rounded to 0.25mg.
    The residual against the rounded total goes to the largest part,
    so the parts always sum to round_to_quarter(total_dose).
    """
    target = round_to_quarter(total_dose)
    doses = [round_to_quarter(total_dose * r) for r in ratios]
    difference = round_to_quarter(target - sum(doses))
    if abs(difference) >= config.QUARTER_MG:
        i = doses.index(max(doses))
        doses[i] = round_to_quarter(doses[i] + difference)
    return doses


def quarters_label(dose: float) -> str:
    """Practical tablet wording for a cortisone acetate dose (25mg = 1 compressa)."""
    if dose <= 0:
        return "-"
    quarters = dose / config.GC_DOSE_STEP
    if quarters == math.floor(quarters):
        q = int(quarters)
        named = {1: "1/4 compressa", 2: "1/2 compressa", 3: "3/4 compressa", 4: "1 compressa"}
        if q in named:
            return named[q]
        return f"{q // 4} cpr + {q % 4}/4"
    return f"{quarters:.2f} quarti"


def _is_multiple(value: float, step: float, tolerance: float) -> bool:
    remainder = math.fmod(value, step)
    return abs(remainder) <= tolerance or abs(step - abs(remainder)) <= tolerance


def validate_therapy_values(therapy: CurrentTherapy) -> List[str]:
    """Editor-level checks; returns human-readable Italian error strings (empty = valid)."""
    errors: List[str] = []
    total = therapy.total

    if total < config.EDITOR_MIN_GC_DOSE or total > config.EDITOR_MAX_GC_DOSE:
        errors.append(
            f"Dose totale cortisone ({total:g}mg) fuori range raccomandato "
            f"({config.EDITOR_MIN_GC_DOSE:g}-{config.EDITOR_MAX_GC_DOSE:g}mg/die)"
        )

    morning_share = therapy.morning / total * 100 if total > 0 else 0.0
    if morning_share < config.MIN_MORNING_SHARE:
        errors.append("La dose mattutina dovrebbe essere almeno il 50% del totale")

    if therapy.florinef < config.EDITOR_MIN_FLORINEF or therapy.florinef > config.EDITOR_MAX_FLORINEF:
        errors.append(
            f"Dose Florinef ({therapy.florinef:g}mg) fuori range raccomandato "
            f"({config.EDITOR_MIN_FLORINEF:g}-{config.EDITOR_MAX_FLORINEF:g}mg/die)"
        )

    errors.extend(_quarter_errors(therapy, tolerance=0.001))

    # Florinef compared in micrograms to dodge float noise
    if not _is_multiple(therapy.florinef * 1000, config.FLORINEF_STEP * 1000, tolerance=1):
        errors.append("Usare incrementi di 0.025mg per il Florinef")

    return errors


def _quarter_errors(therapy: CurrentTherapy, tolerance: float) -> List[str]:
    errors = []
    labels = (("morning", "mattutina"), ("midday", "mezzogiorno"), ("evening", "serale"))
    for attr, label in labels:
        dose = getattr(therapy, attr)
        if not _is_multiple(dose, config.QUARTER_MG, tolerance):
            errors.append(
                f"Dose {label} {dose:g}mg non è un quarto valido. "
                f"Suggerito: {round_to_quarter(dose):g}mg"
            )
    return errors


def validate_quarter_doses(therapy: CurrentTherapy) -> List[str]:
    """Checks applied before accepting an engine proposal: quarter grain and [15, 50] total."""
    errors = _quarter_errors(therapy, tolerance=1e-9)
    if therapy.total < config.MIN_GC_DOSE:
        errors.append("Dose totale troppo bassa (<15mg/die). Rischio crisi surrenalica.")
    if therapy.total > config.MAX_GC_DOSE:
        errors.append("Dose totale troppo alta (>50mg/die). Rischio effetti Cushingoidi.")
    return errors


def auto_correct_to_quarters(therapy: CurrentTherapy) -> CurrentTherapy:
    return replace(
        therapy,
        morning=round_to_quarter(therapy.morning),
        midday=round_to_quarter(therapy.midday),
        evening=round_to_quarter(therapy.evening),
    )
