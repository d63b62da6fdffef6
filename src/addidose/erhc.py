"""
ER-HC (extended-release hydrocortisone) candidacy score.

Five independently weighted factors sum to 0-100:
dose level (15), Cushingoid signs (20), quality of life (25),
adherence burden (20), symptom pattern (20).
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class ScoreFactor:
    name: str
    score: int
    weight: int
    reason: str


@dataclass
class ERHCCandidacyScore:
    total_score: int
    category: str         # not_candidate | possible | good | excellent
    priority: str         # low | medium | high | urgent
    recommendation: str
    factors: List[ScoreFactor] = field(default_factory=list)


# (threshold, category, priority, recommendation), checked top-down
CATEGORY_TIERS = [
    (75, "excellent", "urgent",
     "🟢 CANDIDATO ECCELLENTE per ER-HC. Switch fortemente raccomandato. "
     "Benefici attesi significativi su QoL, parametri metabolici e aderenza."),
    (60, "good", "high",
     "🟡 BUON CANDIDATO per ER-HC. Switch consigliato dopo discussione rischi-benefici e costi. "
     "Benefici attesi rilevanti."),
    (40, "possible", "medium",
     "🟠 CANDIDATO POSSIBILE per ER-HC. Valutare caso per caso considerando preferenze paziente, "
     "costi e aspettative realistiche sui benefici."),
]

NOT_CANDIDATE = (
    "not_candidate", "low",
    "⚪ Non candidato prioritario per ER-HC. Terapia convenzionale adeguata. "
    "Rivalutare in caso di peggioramento QoL o comparsa segni Cushingoidi.",
)


def categorize_erhc_score(total_score: int) -> Tuple[str, str, str]:
    """Map a total score to (category, priority, recommendation)."""
    for threshold, category, priority, recommendation in CATEGORY_TIERS:
        if total_score >= threshold:
            return category, priority, recommendation
    return NOT_CANDIDATE


def _dose_factor(current_dose: float) -> ScoreFactor:
    if current_dose > 37.5:
        return ScoreFactor("Dose molto elevata (>37.5mg)", 15, 15, "ER-HC riduce esposizione complessiva del 20%")
    if current_dose > 25:
        return ScoreFactor("Dose elevata (>25mg)", 10, 15, "Potenziale beneficio da riduzione esposizione")
    return ScoreFactor("Dose standard (≤25mg)", 3, 15, "Beneficio limitato ma possibile")


def _cushingoid_factor(hypertension: bool, hypokalemia: bool,
                       bmi: Optional[float], hba1c: Optional[float]) -> Optional[ScoreFactor]:
    score = 0
    if hypertension:
        score += 10
    if hypokalemia:
        score += 10
    if bmi is not None and bmi > 28:
        score += 5
    if hba1c is not None and hba1c > 6.0:
        score += 5
    score = min(20, score)
    if score == 0:
        return None
    return ScoreFactor("Segni Cushingoidi subclinici", score, 20, "ER-HC riduce effetti metabolici avversi")


def _qol_factor(qol_score: Optional[float]) -> Optional[ScoreFactor]:
    if qol_score is None:
        return None
    if qol_score < 2.5:
        return ScoreFactor("QoL critica (<2.5)", 25, 25, "ER-HC migliora AddiQoL in media di +4 punti")
    if qol_score < 3.5:
        return ScoreFactor("QoL subottimale (2.5-3.5)", 18, 25, "Significativo margine di miglioramento")
    return ScoreFactor("QoL accettabile (≥3.5)", 8, 25, "Miglioramento comunque possibile")


def _adherence_factor(adherence_issues: bool, administrations: int) -> ScoreFactor:
    if adherence_issues:
        return ScoreFactor("Problemi di aderenza", 20, 20, "Monosomministrazione Plenadren facilita aderenza")
    if administrations >= 3:
        return ScoreFactor("Schema complesso (≥3 somministrazioni)", 15, 20,
                           "Semplificazione schema migliora aderenza")
    return ScoreFactor("Aderenza buona", 5, 20, "Beneficio da semplificazione comunque presente")


def _symptom_factor(morning_fatigue: bool) -> ScoreFactor:
    if morning_fatigue:
        return ScoreFactor("Astenia mattutina", 15, 20, "Efmody ripristina picco mattutino fisiologico")
    return ScoreFactor("Sintomi aspecifici", 5, 20, "Ritmo circadiano migliora benessere generale")


def calculate_erhc_candidacy_score(
    current_dose: float,
    hypertension: bool,
    hypokalemia: bool,
    qol_score: Optional[float],
    adherence_issues: bool,
    morning_fatigue: bool,
    administrations: int,
    age: int,
    bmi: Optional[float] = None,
    hba1c: Optional[float] = None,
) -> ERHCCandidacyScore:
    # age is part of the scoring inputs but carries no weight yet
    factors = [
        _dose_factor(current_dose),
        _cushingoid_factor(hypertension, hypokalemia, bmi, hba1c),
        _qol_factor(qol_score),
        _adherence_factor(adherence_issues, administrations),
        _symptom_factor(morning_fatigue),
    ]
    factors = [f for f in factors if f is not None]
    total = sum(min(f.score, f.weight) for f in factors)
    total = max(0, min(100, total))
    category, priority, recommendation = categorize_erhc_score(total)
    return ERHCCandidacyScore(
        total_score=total,
        category=category,
        priority=priority,
        recommendation=recommendation,
        factors=factors,
    )
