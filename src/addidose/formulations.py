"""
Glucocorticoid formulations and dose equivalence.

Potency factors are expressed against cortisone acetate (1.0): 25mg CA = 20mg
hydrocortisone = 16mg Plenadren = 18mg Efmody.
"""
from dataclasses import dataclass, field
from typing import Dict, List

from .therapy import round_half_up, round_to_quarter


@dataclass(frozen=True)
class GlucocorticoidFormulation:
    name: str
    type: str              # IR (immediate release) | ER (extended release)
    administrations: int   # per day
    bioavailability: int   # %
    potency_factor: float
    description: str
    benefits: List[str] = field(default_factory=list)
    contraindications: List[str] = field(default_factory=list)
    cost_category: str = "low"


FORMULATIONS: Dict[str, GlucocorticoidFormulation] = {
    "cortisone_acetate": GlucocorticoidFormulation(
        name="Cortone Acetato",
        type="IR",
        administrations=2,
        bioavailability=80,
        potency_factor=1.0,
        description="Formulazione standard a rilascio immediato",
        benefits=["Costo contenuto", "Ampia esperienza clinica", "Facilmente frazionabile"],
        cost_category="low",
    ),
    "hydrocortisone": GlucocorticoidFormulation(
        name="Idrocortisone",
        type="IR",
        administrations=3,
        bioavailability=90,
        potency_factor=0.8,
        description="Formulazione a rilascio immediato più potente",
        benefits=[
            "Maggiore potenza (emivita più breve)",
            "Migliore controllo con 3 dosi",
            "Opzione per via parenterale",
        ],
        cost_category="low",
    ),
    "plenadren": GlucocorticoidFormulation(
        name="Plenadren",
        type="ER",
        administrations=1,
        bioavailability=85,
        potency_factor=0.64,  # includes the ~20% lower exposure of the ER profile
        description="Idrocortisone a rilascio modificato dual-release",
        benefits=[
            "Monosomministrazione mattutina (migliore aderenza)",
            "Riduzione peso corporeo (-1-2kg)",
            "Riduzione pressione arteriosa (-5mmHg sistolica)",
            "Miglioramento HbA1c (-0.3-0.6%)",
            "Miglioramento qualità vita (AddiQoL +4 punti)",
            "Esposizione cortisolo -20% vs IR",
        ],
        contraindications=[
            "Malassorbimento intestinale",
            "Transito intestinale rapido",
            "Bypass gastrico",
            "Malattie infiammatorie croniche intestinali non controllate",
        ],
        cost_category="high",
    ),
    "efmody": GlucocorticoidFormulation(
        name="Efmody",
        type="ER",
        administrations=2,
        bioavailability=88,
        potency_factor=0.72,
        description="Idrocortisone MR con rilascio circadiano",
        benefits=[
            "Ripristina ritmo circadiano fisiologico",
            "Dose serale (23:00) + dose mattutina (07:00)",
            "Ottimale per astenia mattutina",
            "Picco cortisolo al risveglio",
            "Miglioramento pattern sonno-veglia",
        ],
        contraindications=["Malassorbimento", "Transito rapido", "Difficoltà aderenza schema serale"],
        cost_category="high",
    ),
}


def get_formulation(key: str) -> GlucocorticoidFormulation:
    try:
        return FORMULATIONS[key]
    except KeyError:
        raise ValueError(f"Unknown glucocorticoid formulation: {key!r}")


def convert_dose_between_formulations(dose: float, from_key: str, to_key: str) -> float:
    """Convert via the cortisone acetate equivalent; ER rounded to 0.5mg, IR to 0.25mg."""
    source = get_formulation(from_key)
    target = get_formulation(to_key)
    target_dose = dose / source.potency_factor * target.potency_factor
    if target.type == "ER":
        return round_half_up(target_dose, 0.5)
    return round_to_quarter(target_dose)


def efmody_split(dose: float) -> Dict[str, float]:
    """Efmody circadian split: 67% at 23:00, 33% at 07:00, each to 0.5mg."""
    return {
        "evening": round_half_up(dose * 0.67, 0.5),
        "morning": round_half_up(dose * 0.33, 0.5),
    }


@dataclass
class SwitchStep:
    day: int
    old_formulation_dose: float
    new_formulation_dose: float
    instructions: str


@dataclass
class SwitchProtocol:
    from_formulation: str
    to_formulation: str
    current_dose: float
    target_dose: float
    duration_days: int
    steps: List[SwitchStep] = field(default_factory=list)
    monitoring: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def generate_switch_protocol(from_key: str, to_key: str, current_dose: float) -> SwitchProtocol:
    """Day-by-day plan for moving a patient between formulations (7 days towards ER)."""
    target_dose = convert_dose_between_formulations(current_dose, from_key, to_key)
    source = get_formulation(from_key)
    target = get_formulation(to_key)
    protocol = SwitchProtocol(
        from_formulation=source.name,
        to_formulation=target.name,
        current_dose=current_dose,
        target_dose=target_dose,
        duration_days=7,
    )

    if target.type == "ER":
        protocol.steps = [
            SwitchStep(1, current_dose, 0,
                       f"Ultimo giorno con {source.name} {current_dose:g}mg. "
                       f"Preparare {target.name} per inizio domani mattina."),
            SwitchStep(2, 0, target_dose,
                       f"INIZIO {target.name} {target_dose:g}mg al mattino (07:00-08:00). "
                       f"Sospendere completamente {source.name}. Monitorare sintomi nelle prime 48h."),
            SwitchStep(3, 0, target_dose,
                       f"Continuare {target.name} {target_dose:g}mg. Valutare tollerabilità e sintomi."),
            SwitchStep(7, 0, target_dose,
                       "Fine prima settimana. Valutazione clinica: sintomi, PA, peso, benessere generale."),
        ]
        protocol.monitoring = [
            "📅 Controllo sintomi giorni 2-3-7",
            "📅 Elettroliti e ACTH a 2 settimane",
            "📅 Valutazione QoL a 4 settimane",
            "📅 Follow-up completo a 8-12 settimane",
            "⚖️ Peso corporeo settimanale primi 2 mesi",
            "🩺 PA a domicilio giornaliera prima settimana, poi settimanale",
        ]
        protocol.warnings = [
            "⚠️ NON dividere o frantumare compresse ER-HC",
            "⚠️ Assumere a stomaco vuoto o con pasto leggero",
            "⚠️ NON associare a inibitori pompa protonica nelle 2h precedenti",
            "⚠️ In caso di vomito <2h: dose extra IR-HC 10mg, NON ripetere ER-HC",
            "⚠️ Protocolli stress: usare sempre IR-HC, NON ER-HC",
            f"⚠️ Tenere disponibile {source.name} per emergenze primi 30 giorni",
        ]
    else:
        protocol.steps = [
            SwitchStep(1, 0, target_dose,
                       f"Switch diretto a {target.name} {target_dose:g}mg. "
                       "Distribuire secondo schema temporale ottimale."),
        ]
        protocol.monitoring = [
            "📅 Controllo sintomi a 3-5 giorni",
            "📅 Elettroliti a 2 settimane se dose modificata",
        ]
        protocol.warnings = ["⚠️ Adeguare distribuzione oraria in base a emivita del nuovo farmaco"]

    return protocol
