"""
Predictive response modeling from a patient's therapy history.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from . import config
from .models import (
    EFFECTIVENESS_SCORES,
    CurrentTherapy,
    PatientProfile,
    ResponsePattern,
    TherapyHistoryEntry,
)
from .therapy import clamp_gc_dose, round_half_up, round_to_quarter

logger = logging.getLogger(__name__)


@dataclass
class ExpectedOutcome:
    acth_improvement: float = 0.0
    qol_improvement: float = 0.0
    stability_score: float = 50.0


@dataclass
class PredictiveAnalysis:
    recommended_dose: float
    confidence: float  # 0-100
    reasoning: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    expected_outcome: ExpectedOutcome = field(default_factory=ExpectedOutcome)


def calculate_optimal_distribution(history: List[TherapyHistoryEntry]) -> Tuple[int, int, int]:
    """Average morning/midday/evening share (%) over entries rated excellent or good."""
    successful = [h for h in history if h.effectiveness in ("excellent", "good") and h.therapy.total > 0]
    if not successful:
        return (40, 30, 30)
    sums = [0.0, 0.0, 0.0]
    for entry in successful:
        t = entry.therapy
        sums[0] += t.morning / t.total * 100
        sums[1] += t.midday / t.total * 100
        sums[2] += t.evening / t.total * 100
    n = len(successful)
    return tuple(int(round_half_up(s / n, 1)) for s in sums)


def analyze_patient_response(profile: PatientProfile) -> ResponsePattern:
    history = profile.therapy_history
    if len(history) < 2:
        return ResponsePattern()

    # dose change against the rating that followed it
    pairs = []
    for prev, entry in zip(history, history[1:]):
        dose_change = entry.therapy.total - prev.therapy.total
        effectiveness = EFFECTIVENESS_SCORES.get(entry.effectiveness, 1)
        pairs.append(dose_change * effectiveness)
    avg_correlation = sum(pairs) / len(pairs) if pairs else 0.0

    scores = [EFFECTIVENESS_SCORES[h.effectiveness] for h in history if h.effectiveness]
    stability = sum(scores) / len(scores) * 25 if scores else 50.0

    return ResponsePattern(
        cortisone_to_acth=max(-1.0, min(1.0, avg_correlation / 10)),
        optimal_distribution=calculate_optimal_distribution(history),
        stress_response="low" if profile.demographics.age > 65 else "normal",
        average_qol=stability * 2,
        stability_score=stability,
        dose_response_slope=abs(avg_correlation),
    )


def add_therapy_entry(
    profile: PatientProfile,
    therapy: CurrentTherapy,
    effectiveness: str,
    side_effects: Optional[List[str]] = None,
    on: Optional[date] = None,
) -> PatientProfile:
    """Append the therapy as a rated history entry and recompute the response pattern."""
    if effectiveness not in EFFECTIVENESS_SCORES:
        raise ValueError(f"Unknown effectiveness rating: {effectiveness!r}")
    entry = TherapyHistoryEntry(
        date=(on or date.today()).isoformat(),
        therapy=therapy,
        duration=30,
        reason="Aggiustamento secondo algoritmo",
        prescriber="AddiDose++",
        effectiveness=effectiveness,
        side_effects=list(side_effects or []),
    )
    history = profile.therapy_history + [entry]
    updated = profile.with_history(history, profile.response_patterns)
    updated = updated.with_history(history, analyze_patient_response(updated))
    logger.info("Therapy entry added for %s (%s), stability %.0f",
                profile.id, effectiveness, updated.response_patterns.stability_score)
    return updated


def generate_predictive_analysis(
    acth: Optional[float],
    therapy: CurrentTherapy,
    profile: Optional[PatientProfile],
) -> PredictiveAnalysis:
    """
    Without a profile the prediction is the current dose at 30% confidence.
    With one, the dose moves by (ACTH - 50 pg/mL) x personal slope; a missing
    ACTH predicts no change.
    """
    current_dose = therapy.total
    if profile is None:
        return PredictiveAnalysis(
            recommended_dose=current_dose,
            confidence=30,
            reasoning=["Analisi basata su linee guida standard", "Nessuna storia clinica disponibile"],
        )

    patterns = profile.response_patterns
    acth_gap = acth - config.TARGET_ACTH if acth is not None else 0.0
    predicted = current_dose + acth_gap * patterns.dose_response_slope
    recommended = round_to_quarter(clamp_gc_dose(predicted))
    confidence = min(95.0, 40 + patterns.stability_score / 2)

    distribution = "%-".join(str(x) for x in patterns.optimal_distribution)
    reasoning = [
        f"Basato su {len(profile.therapy_history)} episodi terapeutici",
        f"Pattern di risposta personale: {'responsivo' if patterns.cortisone_to_acth > 0 else 'standard'}",
        f"Distribuzione ottimale storicamente: {distribution}%",
        f"Score di stabilità: {int(round_half_up(patterns.stability_score, 1))}/100",
    ]
    return PredictiveAnalysis(
        recommended_dose=recommended,
        confidence=confidence,
        reasoning=reasoning,
        risk_factors=list(profile.risk_factors),
        expected_outcome=ExpectedOutcome(
            acth_improvement=min(100.0, abs(acth_gap) * 0.7),
            qol_improvement=15 if patterns.average_qol > 70 else 25,
            stability_score=min(100.0, patterns.stability_score + 10),
        ),
    )


def smart_notifications(prediction: PredictiveAnalysis, profile: Optional[PatientProfile],
                        learning_mode: bool = config.LEARNING_MODE) -> List[str]:
    notes: List[str] = []
    if profile is None or not learning_mode:
        return notes
    if prediction.confidence > 80:
        notes.append("🎯 Alta affidabilità della previsione AI - Raccomandazione altamente personalizzata")
    if profile.response_patterns.stability_score < 50:
        notes.append("📊 Pattern instabile rilevato - Considerare monitoraggio più frequente")
    if len(profile.therapy_history) > 5:
        notes.append("🧠 Modello maturo - Precisione predittiva ottimizzata")
    if prediction.expected_outcome.qol_improvement > 20:
        notes.append("✨ Miglioramento significativo della qualità di vita previsto")
    return notes
