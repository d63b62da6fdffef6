"""
Drug-interaction matcher for glucocorticoid replacement.

The database is a static table; matching is a case-insensitive substring search
of each drug's name variants in the free-text medication notes. Dose effects
combine multiplicatively: total = prod(1 + adj/100) - 1.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# categories
CYP3A4_INDUCER = "cyp3a4_inducer"
CYP3A4_INHIBITOR = "cyp3a4_inhibitor"
DIURETIC = "diuretic"
ACE_INHIBITOR = "ace_inhibitor"
ARB = "arb"
ANTICOAGULANT = "anticoagulant"
NSAID = "nsaid"
ESTROGEN = "estrogen"
THYROID = "thyroid"
ANTACID = "antacid"

# effects
INCREASE_GC_NEED = "increase_gc_need"
DECREASE_GC_NEED = "decrease_gc_need"
ELECTROLYTE_RISK = "electrolyte_risk"
ABSORPTION_ISSUE = "absorption_issue"
MONITORING_NEEDED = "monitoring_needed"

DOSE_EFFECTS = (INCREASE_GC_NEED, DECREASE_GC_NEED)

SEVERITY_ICONS = {"critical": "🚨", "major": "⚠️", "moderate": "⚡", "minor": "ℹ️"}


@dataclass(frozen=True)
class DrugEntry:
    variants: tuple
    category: str
    severity: str          # critical | major | moderate | minor
    effect: str
    dose_adjustment: int   # % change of glucocorticoid need
    recommendations: tuple = ()
    monitoring: tuple = ()


@dataclass
class DrugInteraction:
    drug_name: str
    detected_variants: List[str]
    category: str
    severity: str
    effect: str
    dose_adjustment: int
    recommendations: List[str]
    monitoring: List[str]


@dataclass
class DrugAnalysisResult:
    detected: List[DrugInteraction] = field(default_factory=list)
    total_dose_adjustment: int = 0  # %
    alerts: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    requires_monitoring: List[str] = field(default_factory=list)

    @property
    def adjustment_factor(self) -> float:
        return 1 + self.total_dose_adjustment / 100


DRUG_DATABASE: Dict[str, DrugEntry] = {
    # CYP3A4 inducers: faster cortisol clearance
    "rifampicina": DrugEntry(
        variants=("rifampicina", "rifampin", "rifadin"),
        category=CYP3A4_INDUCER, severity="critical", effect=INCREASE_GC_NEED, dose_adjustment=50,
        recommendations=(
            "Aumentare dose glucocorticoide del 50-100%",
            "Monitorare ACTH e sintomi clinici strettamente",
            "Considerare formulazioni ER-HC per maggiore stabilità",
        ),
        monitoring=("ACTH ogni 2-3 settimane", "Elettroliti settimanali", "Pressione arteriosa"),
    ),
    "fenitoina": DrugEntry(
        variants=("fenitoina", "phenytoin", "dintoina", "aurantin"),
        category=CYP3A4_INDUCER, severity="major", effect=INCREASE_GC_NEED, dose_adjustment=35,
        recommendations=(
            "Aumentare dose glucocorticoide del 25-50%",
            "Valutare switch ad antiepilettici non induttori se possibile",
        ),
        monitoring=("ACTH mensile", "Sintomi ipocortisolismo"),
    ),
    "carbamazepina": DrugEntry(
        variants=("carbamazepina", "carbamazepine", "tegretol"),
        category=CYP3A4_INDUCER, severity="major", effect=INCREASE_GC_NEED, dose_adjustment=35,
        recommendations=(
            "Aumentare dose glucocorticoide del 25-50%",
            "Considerare alternative (lamotrigina, levetiracetam)",
        ),
        monitoring=("ACTH mensile", "Funzionalità epatica"),
    ),
    "fenobarbital": DrugEntry(
        variants=("fenobarbital", "phenobarbital", "gardenal", "luminal"),
        category=CYP3A4_INDUCER, severity="major", effect=INCREASE_GC_NEED, dose_adjustment=30,
        recommendations=(
            "Aumentare dose glucocorticoide del 30-40%",
            "Monitoraggio frequente nei primi 2 mesi",
        ),
        monitoring=("ACTH ogni 3-4 settimane",),
    ),
    # CYP3A4 inhibitors: slower clearance, iatrogenic Cushing risk
    "ritonavir": DrugEntry(
        variants=("ritonavir", "norvir"),
        category=CYP3A4_INHIBITOR, severity="critical", effect=DECREASE_GC_NEED, dose_adjustment=-30,
        recommendations=(
            "Ridurre dose glucocorticoide del 25-35%",
            "Rischio significativo di Cushing iatrogeno",
            "Considerare monitoraggio cortisolo libero urinario",
        ),
        monitoring=("Cortisolo libero urinario 24h mensile", "Peso corporeo", "Glicemia", "PA settimanale"),
    ),
    "itraconazolo": DrugEntry(
        variants=("itraconazolo", "itraconazole", "sporanox"),
        category=CYP3A4_INHIBITOR, severity="major", effect=DECREASE_GC_NEED, dose_adjustment=-25,
        recommendations=("Ridurre dose glucocorticoide del 20-30%", "Monitorare segni di sovradosaggio"),
        monitoring=("Peso", "PA", "Glicemia"),
    ),
    "ketoconazolo": DrugEntry(
        variants=("ketoconazolo", "ketoconazole", "nizoral"),
        category=CYP3A4_INHIBITOR, severity="major", effect=DECREASE_GC_NEED, dose_adjustment=-25,
        recommendations=(
            "Ridurre dose glucocorticoide del 20-30%",
            "⚠️ Ketoconazolo stesso inibisce sintesi steroidea",
        ),
        monitoring=("Funzione surrenalica", "Elettroliti"),
    ),
    "claritromicina": DrugEntry(
        variants=("claritromicina", "clarithromycin", "klacid", "macladin"),
        category=CYP3A4_INHIBITOR, severity="moderate", effect=DECREASE_GC_NEED, dose_adjustment=-20,
        recommendations=(
            "Ridurre dose glucocorticoide del 15-25% durante terapia",
            "Ritornare a dose normale dopo sospensione antibiotico",
        ),
        monitoring=("Sintomi Cushing durante terapia",),
    ),
    "eritromicina": DrugEntry(
        variants=("eritromicina", "erythromycin", "eritrocina"),
        category=CYP3A4_INHIBITOR, severity="moderate", effect=DECREASE_GC_NEED, dose_adjustment=-15,
        recommendations=("Ridurre dose glucocorticoide del 10-20% durante terapia",),
        monitoring=("PA", "Sintomi"),
    ),
    # estrogens raise CBG and lower free cortisol
    "estradiolo": DrugEntry(
        variants=("estradiolo", "estradiol", "progynova", "climara"),
        category=ESTROGEN, severity="major", effect=INCREASE_GC_NEED, dose_adjustment=30,
        recommendations=(
            "Aumentare dose glucocorticoide del 25-40%",
            "Gli estrogeni aumentano CBG → riduce cortisolo libero",
            "Considerare via transdermica per minore effetto",
        ),
        monitoring=("ACTH", "Cortisolo libero", "Sintomi ipocortisolismo"),
    ),
    "etinilestradiolo": DrugEntry(
        variants=("etinilestradiolo", "ethinylestradiol", "pillola", "contraccettivo orale"),
        category=ESTROGEN, severity="major", effect=INCREASE_GC_NEED, dose_adjustment=30,
        recommendations=(
            "Aumentare dose glucocorticoide del 25-40%",
            "Considerare contraccettivi progestinici puri",
        ),
        monitoring=("ACTH mensile primi 3 mesi",),
    ),
    "furosemide": DrugEntry(
        variants=("furosemide", "lasix"),
        category=DIURETIC, severity="moderate", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=(
            "Monitorare elettroliti frequentemente",
            "Rischio ipokaliemia aumentato",
            "Possibile necessità riduzione florinef",
        ),
        monitoring=("Na, K settimanali", "Funzione renale"),
    ),
    "idroclorotiazide": DrugEntry(
        variants=("idroclorotiazide", "hydrochlorothiazide", "esidrex"),
        category=DIURETIC, severity="moderate", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=("Monitorare ipokaliemia", "Può mascherare deficit mineralcorticoide"),
        monitoring=("Elettroliti settimanali",),
    ),
    "spironolattone": DrugEntry(
        variants=("spironolattone", "spironolactone", "aldactone"),
        category=DIURETIC, severity="major", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=(
            "⚠️ ANTAGONISTA MINERALCORTICOIDE",
            "Può richiedere aumento significativo florinef",
            "Valutare alternative se possibile",
        ),
        monitoring=("Na, K ogni 3-5 giorni", "Renina", "PA"),
    ),
    "enalapril": DrugEntry(
        variants=("enalapril", "enapren"),
        category=ACE_INHIBITOR, severity="moderate", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=("Monitorare iperkaliemia", "Può ridurre aldosterone endogeno residuo"),
        monitoring=("K, Na settimanali inizialmente",),
    ),
    "ramipril": DrugEntry(
        variants=("ramipril", "triatec"),
        category=ACE_INHIBITOR, severity="moderate", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=("Attenzione a iperkaliemia", "Monitoraggio elettrolitico stretto"),
        monitoring=("Elettroliti settimanali",),
    ),
    "losartan": DrugEntry(
        variants=("losartan", "lortaan"),
        category=ARB, severity="moderate", effect=ELECTROLYTE_RISK, dose_adjustment=0,
        recommendations=("Monitorare iperkaliemia", "Effetti simili ad ACE-inibitori"),
        monitoring=("K settimanale",),
    ),
    "warfarin": DrugEntry(
        variants=("warfarin", "coumadin"),
        category=ANTICOAGULANT, severity="moderate", effect=MONITORING_NEEDED, dose_adjustment=0,
        recommendations=(
            "Glucocorticoidi possono potenziare effetto anticoagulante",
            "INR più frequente dopo modifiche dose GC",
        ),
        monitoring=("INR settimanale dopo modifiche GC",),
    ),
    "ibuprofene": DrugEntry(
        variants=("ibuprofene", "ibuprofen", "brufen", "moment"),
        category=NSAID, severity="moderate", effect=MONITORING_NEEDED, dose_adjustment=0,
        recommendations=(
            "Rischio aumentato gastrite/ulcera se usato con GC",
            "Preferire paracetamolo quando possibile",
            "Considerare protezione gastrica",
        ),
        monitoring=("Sintomi gastrointestinali",),
    ),
    "levotiroxina": DrugEntry(
        variants=("levotiroxina", "levothyroxine", "eutirox", "tirosint"),
        category=THYROID, severity="moderate", effect=INCREASE_GC_NEED, dose_adjustment=10,
        recommendations=(
            "Ormoni tiroidei aumentano metabolismo cortisolo",
            "Aumenti levotiroxina possono slatentizzare insufficienza surrenalica",
            "Aggiustare GC PRIMA di ottimizzare terapia tiroidea",
        ),
        monitoring=("ACTH dopo modifiche levotiroxina", "Sintomi clinici"),
    ),
    "omeprazolo": DrugEntry(
        variants=("omeprazolo", "omeprazole", "mopral", "antra"),
        category=ANTACID, severity="minor", effect=ABSORPTION_ISSUE, dose_adjustment=0,
        recommendations=(
            "Può ridurre assorbimento HC se assunti insieme",
            "Distanziare assunzione di 2 ore",
        ),
        monitoring=("Efficacia terapia GC",),
    ),
    "lansoprazolo": DrugEntry(
        variants=("lansoprazolo", "lansoprazole", "limpidex"),
        category=ANTACID, severity="minor", effect=ABSORPTION_ISSUE, dose_adjustment=0,
        recommendations=("Distanziare da assunzione GC di 2 ore",),
    ),
}


def cumulative_adjustment(adjustments: List[int]) -> int:
    """Combine percentage adjustments multiplicatively and round to a whole percent."""
    if not adjustments:
        return 0
    factor = math.prod(1 + a / 100 for a in adjustments)
    return int(math.floor((factor - 1) * 100 + 0.5))


def _alert_for(interaction: DrugInteraction) -> str:
    icon = SEVERITY_ICONS[interaction.severity]
    level = "CRITICA" if interaction.severity == "critical" else "IMPORTANTE"
    if interaction.effect == INCREASE_GC_NEED:
        action = "Richiede AUMENTO dose GC"
    elif interaction.effect == DECREASE_GC_NEED:
        action = "Richiede RIDUZIONE dose GC"
    else:
        action = "Richiede monitoraggio"
    return f"{icon} {interaction.drug_name.upper()}: Interazione {level} - {action}"


def analyze_drug_interactions(medications_text: Optional[str]) -> DrugAnalysisResult:
    """Match free-text medication notes against DRUG_DATABASE."""
    result = DrugAnalysisResult()
    if not medications_text or not medications_text.strip():
        return result

    text = medications_text.lower()
    for key, entry in DRUG_DATABASE.items():
        found = [v for v in entry.variants if v.lower() in text]
        if not found:
            continue
        result.detected.append(DrugInteraction(
            drug_name=key.capitalize(),
            detected_variants=found,
            category=entry.category,
            severity=entry.severity,
            effect=entry.effect,
            dose_adjustment=entry.dose_adjustment,
            recommendations=list(entry.recommendations),
            monitoring=list(entry.monitoring),
        ))

    result.total_dose_adjustment = cumulative_adjustment(
        [d.dose_adjustment for d in result.detected if d.effect in DOSE_EFFECTS]
    )
    result.alerts = [_alert_for(d) for d in result.detected if d.severity in ("critical", "major")]
    # dict.fromkeys keeps first-seen order while deduplicating
    result.recommendations = list(dict.fromkeys(r for d in result.detected for r in d.recommendations))
    result.requires_monitoring = list(dict.fromkeys(m for d in result.detected for m in d.monitoring))

    if result.detected:
        logger.debug(
            "Detected %d interacting drugs (%s), total adjustment %+d%%",
            len(result.detected),
            ", ".join(d.drug_name for d in result.detected),
            result.total_dose_adjustment,
        )
    return result
