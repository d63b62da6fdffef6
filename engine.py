# engine.py
"""
Rule engine for Addison's disease replacement therapy (AME guidelines).
- Threshold flags are computed once from the latest PatientRecord.
- Glucocorticoid and fludrocortisone changes come from prioritized Rules; the
  fallback rule keeps the current dose.
- Safe handling of missing inputs: an absent lab value never raises a flag.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from src.addidose import config
from src.addidose.drug_interactions import DrugAnalysisResult, analyze_drug_interactions
from src.addidose.erhc import ERHCCandidacyScore, calculate_erhc_candidacy_score
from src.addidose.models import CurrentTherapy, PatientProfile, PatientRecord
from src.addidose.prediction import PredictiveAnalysis, generate_predictive_analysis, smart_notifications
from src.addidose import report
from src.addidose.report import ReportSection
from src.addidose.schedule import DosingSchedule, SymptomProfile, select_optimal_dosing_schedule
from src.addidose.therapy import clamp_gc_dose, distribute_dose_in_quarters, round_to_quarter

logger = logging.getLogger(__name__)


def _lt(value: Optional[float], limit: float) -> bool:
    return value is not None and value < limit


def _gt(value: Optional[float], limit: float) -> bool:
    return value is not None and value > limit


def _ge(value: Optional[float], limit: float) -> bool:
    return value is not None and value >= limit


@dataclass(frozen=True)
class ClinicalFlags:
    hyponatremia: bool = False
    hypernatremia: bool = False
    hypokalemia: bool = False
    hyperkalemia: bool = False
    elevated_acth: bool = False
    normal_acth: bool = False       # in the normal range while on replacement: overdose signal
    low_cortisol: bool = False
    elevated_renin: bool = False
    hypotension: bool = False
    hypertension: bool = False
    orthostatic_hypotension: bool = False
    excessive_fatigue: bool = False
    hypoglycemia: bool = False
    salt_craving: bool = False
    vertigo: bool = False

    @property
    def crisis_risk(self) -> bool:
        return self.hyponatremia and self.hyperkalemia and self.hypotension

    @classmethod
    def from_record(cls, r: PatientRecord) -> "ClinicalFlags":
        acth_low, acth_high = config.ACTH_NORMAL_RANGE
        orthostatic = (
            r.bp_sup_sys is not None and r.bp_orth_sys is not None
            and r.bp_sup_sys - r.bp_orth_sys >= config.ORTHOSTATIC_DROP
        )
        return cls(
            hyponatremia=_lt(r.na, config.NA_LOW),
            hypernatremia=_gt(r.na, config.NA_HIGH),
            hypokalemia=_lt(r.k, config.K_LOW),
            hyperkalemia=_gt(r.k, config.K_HIGH),
            elevated_acth=_gt(r.acth, config.ACTH_ELEVATED),
            normal_acth=r.acth is not None and acth_low <= r.acth <= acth_high,
            low_cortisol=_lt(r.cortisol, config.CORTISOL_LOW),
            elevated_renin=_gt(r.renin, config.RENIN_HIGH),
            hypotension=_lt(r.bp_sup_sys, config.SYS_LOW) or _lt(r.bp_sup_dia, config.DIA_LOW),
            hypertension=_ge(r.bp_sup_sys, config.SYS_HIGH) or _ge(r.bp_sup_dia, config.DIA_HIGH),
            orthostatic_hypotension=orthostatic,
            excessive_fatigue=_ge(r.fatigue, config.FATIGUE_EXCESSIVE),
            hypoglycemia=r.hypoglycemia or _lt(r.glucose, config.GLUCOSE_LOW),
            salt_craving=r.crave_salt,
            vertigo=r.vertigo,
        )


@dataclass
class Rule:
    id: str
    description: str
    condition: Callable[[ClinicalFlags], bool]
    recommendation: str       # reason text shown in the report
    dose_delta: float = 0.0   # mg/day
    priority: int = 100       # lower numbers = higher priority
    guideline_ref: str = ""
    explain: Optional[Callable[[ClinicalFlags], str]] = None

    def applies(self, flags: ClinicalFlags) -> bool:
        try:
            return bool(self.condition(flags))
        except Exception:
            return False

    def reason_for(self, flags: ClinicalFlags) -> str:
        return self.explain(flags) if self.explain else self.recommendation


@dataclass
class ExpertEngine:
    rules: List[Rule] = field(default_factory=list)

    def evaluate(self, flags: ClinicalFlags) -> List[Rule]:
        fired = [r for r in self.rules if r.id != "R_FALLBACK" and r.applies(flags)]

        # If nothing fired → use fallback rule
        if not fired:
            fallback = next((r for r in self.rules if r.id == "R_FALLBACK"), None)
            if fallback:
                fired.append(fallback)

        # Sort by priority; the first rule decides the dose
        fired.sort(key=lambda r: r.priority)
        return fired


# ---------- Glucocorticoid (cortisone acetate) rules ----------
def _increase_reasons(f: ClinicalFlags) -> str:
    reasons = []
    if f.hyponatremia:
        reasons.append("iponatremia")
    if f.excessive_fatigue:
        reasons.append("stanchezza eccessiva (QoL)")
    if f.hypoglycemia:
        reasons.append("ipoglicemia")
    return "↗️ Aumento dose per: " + ", ".join(reasons)


def make_glucocorticoid_rules() -> List[Rule]:
    step = config.GC_DOSE_STEP
    return [
        Rule(
            id="R_GC_NORMAL_ACTH",
            description="ACTH in the normal range on replacement therapy -> possible overdose.",
            condition=lambda f: f.normal_acth,
            recommendation="↘️ Riduzione dose: ACTH nei limiti normali suggerisce possibile sovradosaggio",
            dose_delta=-step,
            priority=1,
            guideline_ref="AME 2023",
        ),
        Rule(
            id="R_GC_UNDERDOSE",
            description="Hyponatremia, excessive fatigue or hypoglycemia -> underdose.",
            condition=lambda f: f.hyponatremia or f.excessive_fatigue or f.hypoglycemia,
            recommendation="↗️ Aumento dose",
            dose_delta=step,
            priority=2,
            guideline_ref="AME 2023",
            explain=_increase_reasons,
        ),
        Rule(
            id="R_GC_HYPERTENSION",
            description="Hypertension without hypokalemia -> reduce glucocorticoid.",
            condition=lambda f: f.hypertension and not f.hypokalemia,
            recommendation="↘️ Riduzione dose per ipertensione ben controllata",
            dose_delta=-step,
            priority=3,
            guideline_ref="AME 2023",
        ),
        Rule(
            id="R_FALLBACK",
            description="No dose-changing condition present.",
            condition=lambda f: True,
            recommendation="",
            priority=9999,
            guideline_ref="General",
        ),
    ]


# ---------- Mineralocorticoid (Florinef) rules ----------
def make_mineralocorticoid_rules() -> List[Rule]:
    step = config.FLORINEF_STEP
    return [
        Rule(
            id="R_MC_INCREASE",
            description="Salt loss signs -> increase fludrocortisone.",
            condition=lambda f: f.hyponatremia or f.elevated_renin or f.orthostatic_hypotension or f.salt_craving,
            recommendation="↗️ Aumento per iponatremia/renina elevata/ipotensione ortostatica",
            dose_delta=step,
            priority=1,
        ),
        Rule(
            id="R_MC_DECREASE",
            description="Hypertension or hypokalemia -> reduce fludrocortisone.",
            condition=lambda f: f.hypertension or f.hypokalemia,
            recommendation="↘️ Riduzione per ipertensione/ipokaliemia",
            dose_delta=-step,
            priority=2,
        ),
        Rule(
            id="R_FALLBACK",
            description="Mineralocorticoid balance adequate.",
            condition=lambda f: True,
            recommendation="Mantieni dosaggio attuale",
            priority=9999,
        ),
    ]


def get_engine() -> ExpertEngine:
    return ExpertEngine(make_glucocorticoid_rules())


def get_mineralocorticoid_engine() -> ExpertEngine:
    return ExpertEngine(make_mineralocorticoid_rules())


def adjust_florinef(current: float, delta: float) -> float:
    """One-sided clamp: increases cap at 0.2mg, decreases floor at 0.05mg."""
    if delta > 0:
        return round(min(current + delta, config.MAX_FLORINEF), 3)
    if delta < 0:
        return round(max(current + delta, config.MIN_FLORINEF), 3)
    return current


def clinical_alerts(f: ClinicalFlags, current_dose: float) -> List[str]:
    alerts = []
    if f.hyponatremia and f.hyperkalemia:
        alerts.append("⚠️ ALERT: Squilibrio elettrolitico significativo - considerare aumento terapia")
    if f.hypotension:
        alerts.append("⚠️ ALERT: Ipotensione rilevata - valutare adeguatezza terapia mineralcorticoide")
    if f.hypertension and f.hypokalemia and current_dose > 30:
        alerts.append("⚠️ ALERT: Possibile sovra-dosaggio - valutare riduzione graduale")
    if f.elevated_acth and f.low_cortisol:
        alerts.append("⚠️ ALERT: Controllo inadeguato - considerare ottimizzazione terapia")
    if f.salt_craving or f.vertigo:
        alerts.append("⚠️ ALERT: Sintomi suggestivi di ipoaldosteronismo - valutare fludrocortisone")
    return alerts


def monitoring_plan(dose_changed: bool, florinef_changed: bool, f: ClinicalFlags,
                    drug_analysis: DrugAnalysisResult) -> List[str]:
    lines = []
    if dose_changed or florinef_changed:
        lines += [
            "📅 Ricontrollo elettroliti in 2-4 settimane",
            "📅 Rivalutazione ACTH e cortisolo in 6-8 settimane",
            "📅 Controllo pressione arteriosa settimanale",
        ]
    if f.elevated_renin or florinef_changed:
        lines.append("📅 Controllo renina in 4-6 settimane")
    if drug_analysis.requires_monitoring:
        lines += ["", "💊 MONITORAGGI PER INTERAZIONI FARMACOLOGICHE:"]
        lines += [f"  • {m}" for m in drug_analysis.requires_monitoring]
    return lines


def symptoms_from_record(r: PatientRecord) -> SymptomProfile:
    return SymptomProfile(
        morning_fatigue=_ge(r.fatigue, config.FATIGUE_EXCESSIVE),
        afternoon_fatigue=r.work_capacity is not None and r.work_capacity <= 2,
        evening_fatigue=r.social_life is not None and r.social_life <= 2,
        sleep_disturbance=r.sleep_quality is not None and r.sleep_quality <= 2,
        night_symptoms=False,
    )


@dataclass
class EngineResult:
    report: str
    sections: List[ReportSection] = field(default_factory=list)
    proposed_therapy: Optional[CurrentTherapy] = None
    flags: Optional[ClinicalFlags] = None
    fired_rules: List[Dict[str, Any]] = field(default_factory=list)
    drug_analysis: Optional[DrugAnalysisResult] = None
    erhc_score: Optional[ERHCCandidacyScore] = None
    schedule: Optional[DosingSchedule] = None
    predictive: Optional[PredictiveAnalysis] = None
    notifications: List[str] = field(default_factory=list)

    @property
    def is_emergency(self) -> bool:
        return self.flags is not None and self.flags.crisis_risk


def _explain(rule: Rule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "description": rule.description,
        "recommendation": rule.recommendation,
        "dose_delta": rule.dose_delta,
        "guideline_ref": rule.guideline_ref,
    }


def run_algorithm(
    records: List[PatientRecord],
    therapy: Optional[CurrentTherapy] = None,
    patient: Optional[PatientProfile] = None,
    learning_mode: bool = config.LEARNING_MODE,
) -> EngineResult:
    """Evaluate the latest record against the current therapy and build the report."""
    if not records:
        logger.info("No records: returning the no-data message")
        return EngineResult(report=report.NO_DATA_MESSAGE)

    therapy = therapy or CurrentTherapy()
    r = records[-1]
    flags = ClinicalFlags.from_record(r)
    logger.debug("Flags for record %s: %s", r.date, flags)

    current_dose = therapy.total
    drug_analysis = analyze_drug_interactions(r.other_medications)
    predictive = generate_predictive_analysis(r.acth, therapy, patient)
    notifications = smart_notifications(predictive, patient, learning_mode)
    alerts = list(drug_analysis.alerts) + clinical_alerts(flags, current_dose)

    if flags.crisis_risk:
        logger.warning("Adrenal crisis pattern on record %s: emergency branch", r.date)
        sections = [
            report.emergency_section(),
            report.alerts_section(alerts),
            report.contacts_section(),
        ]
        return EngineResult(
            report=report.render_report(sections),
            sections=[s for s in sections if s is not None],
            flags=flags,
            drug_analysis=drug_analysis,
            predictive=predictive,
            notifications=notifications,
        )

    # ----- glucocorticoid -----
    gc_fired = get_engine().evaluate(flags)
    gc_rule = gc_fired[0]
    base_dose = clamp_gc_dose(round_to_quarter(current_dose + gc_rule.dose_delta))
    dosage_reason = gc_rule.reason_for(flags)

    recommended_dose = base_dose
    if drug_analysis.detected and drug_analysis.total_dose_adjustment != 0:
        recommended_dose = clamp_gc_dose(round_to_quarter(base_dose * drug_analysis.adjustment_factor))
        note = report.drug_adjustment_note(drug_analysis, base_dose, recommended_dose)
        dosage_reason = (dosage_reason or "💊 Aggiustamento per interferenze farmacologiche") + note

    avg_qol = r.average_qol()
    symptoms = symptoms_from_record(r)
    schedule = select_optimal_dosing_schedule(recommended_dose, symptoms, avg_qol)

    # ----- mineralocorticoid -----
    mc_fired = get_mineralocorticoid_engine().evaluate(flags)
    mc_rule = mc_fired[0]
    florinef = adjust_florinef(therapy.florinef, mc_rule.dose_delta)

    logger.info(
        "Record %s: %s %.2f -> %.2f mg/die, %s %.3f -> %.3f mg",
        r.date, gc_rule.id, current_dose, recommended_dose, mc_rule.id, therapy.florinef, florinef,
    )

    # ----- ER-HC -----
    demographics = patient.demographics if patient else None
    erhc_score = calculate_erhc_candidacy_score(
        current_dose=current_dose,
        hypertension=flags.hypertension,
        hypokalemia=flags.hypokalemia,
        qol_score=avg_qol,
        adherence_issues=False,
        morning_fatigue=symptoms.morning_fatigue,
        administrations=therapy.administrations,
        age=demographics.age if demographics else 50,
        bmi=demographics.bmi if demographics else None,
    )

    qol = report.qol_lines(
        r,
        physical_symptoms=flags.vertigo or flags.salt_craving or flags.orthostatic_hypotension,
        cushingoid_signs=flags.hypertension or flags.hypokalemia,
    )
    monitoring = monitoring_plan(
        recommended_dose != current_dose, florinef != therapy.florinef, flags, drug_analysis,
    )

    personalized = patient is not None and predictive.confidence > config.BLEND_CONFIDENCE
    sections = [
        report.glucocorticoid_section(current_dose, recommended_dose, dosage_reason, schedule),
        report.mineralocorticoid_section(therapy.florinef, florinef, mc_rule.reason_for(flags)),
        report.alerts_section(alerts),
        report.drug_interactions_section(drug_analysis, base_dose, recommended_dose),
        report.erhc_section(erhc_score, current_dose, qol_critical=avg_qol is not None and avg_qol < 2.5,
                            morning_fatigue=symptoms.morning_fatigue),
        report.schedule_section(schedule),
        report.qol_section(qol),
        report.monitoring_section(monitoring),
        report.stress_section(),
        report.conversion_table_section(current_dose),
        report.disclaimer_section(),
        report.prediction_section(predictive, patient) if personalized else None,
        report.contacts_section(),
    ]

    if personalized:
        ratios = [share / 100 for share in patient.response_patterns.optimal_distribution]
        doses = distribute_dose_in_quarters(clamp_gc_dose(predictive.recommended_dose), ratios)
        proposed = CurrentTherapy(morning=doses[0], midday=doses[1], evening=doses[2], florinef=florinef)
        logger.info("Proposal blended with personal distribution (confidence %.0f%%)", predictive.confidence)
    else:
        proposed = CurrentTherapy(
            morning=schedule.morning, midday=schedule.midday, evening=schedule.evening, florinef=florinef,
        )

    return EngineResult(
        report=report.render_report(sections),
        sections=[s for s in sections if s is not None],
        proposed_therapy=proposed,
        flags=flags,
        fired_rules=[_explain(rule) for rule in gc_fired + mc_fired],
        drug_analysis=drug_analysis,
        erhc_score=erhc_score,
        schedule=schedule,
        predictive=predictive,
        notifications=notifications,
    )
