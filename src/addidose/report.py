"""
Italian clinical report: an ordered list of optional sections joined at the end.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from .drug_interactions import SEVERITY_ICONS, DrugAnalysisResult
from .erhc import ERHCCandidacyScore
from .formulations import (
    FORMULATIONS,
    convert_dose_between_formulations,
    efmody_split,
    generate_switch_protocol,
)
from .models import PatientProfile, PatientRecord
from .prediction import PredictiveAnalysis
from .schedule import DosingSchedule
from .therapy import quarters_label, round_half_up

NO_DATA_MESSAGE = (
    "📋 ADDIDOSE++ ALGORITMO AME\n\n"
    "Nessun dato disponibile. Inserire almeno un record con parametri clinici per ottenere "
    "raccomandazioni terapeutiche personalizzate.\n\n"
    "⚠️ ATTENZIONE: Questo algoritmo segue le linee guida AME (Associazione Medici Endocrinologi) "
    "e deve essere utilizzato solo da personale medico qualificato."
)

APPLIED_MESSAGE = "✅ Terapia aggiornata con successo! Eseguire nuovamente l'algoritmo per nuove valutazioni."

REPORT_TITLE = "📋 ADDIDOSE++ ALGORITMO AME - RACCOMANDAZIONI CLINICHE"


def fmt(x: float) -> str:
    """Plain number formatting: 25 -> '25', 18.75 -> '18.75'."""
    return f"{x:g}"


@dataclass
class ReportSection:
    title: str
    lines: List[str] = field(default_factory=list)
    rule: str = "-"
    rule_len: int = 30

    def render(self) -> List[str]:
        out = [""]
        if self.title:
            out.append(self.title)
            if self.rule_len:
                out.append(self.rule * self.rule_len)
        out.extend(self.lines)
        return out


def render_report(sections: List[Optional[ReportSection]]) -> str:
    lines = [REPORT_TITLE, "=" * 60]
    for section in sections:
        if section is not None:
            lines.extend(section.render())
    return "\n".join(lines)


# ---------- clinical sections ----------
EMERGENCY_ACTIONS = [
    "🚨 POSSIBILE CRISI SURRENALICA",
    "• AZIONE IMMEDIATA: Flebocortid 100mg IM",
    "• Trasferimento urgente in Pronto Soccorso",
    "• Idratazione con soluzione fisiologica",
    "• Monitoraggio continuo parametri vitali",
]


def emergency_section() -> ReportSection:
    return ReportSection("🚨 EMERGENZA MEDICA", list(EMERGENCY_ACTIONS), rule_len=20)


def glucocorticoid_section(current_dose: float, recommended_dose: float,
                           reason: str, schedule: DosingSchedule) -> ReportSection:
    lines = [
        f"Dose attuale: {fmt(current_dose)} mg/die",
        f"Dose raccomandata: {fmt(recommended_dose)} mg/die",
    ]
    if reason:
        lines.append(f"Motivazione: {reason}")
    lines += [
        "",
        "Schema posologico ottimale:",
        f"• Mattina ({schedule.timings[0]}): {fmt(schedule.morning)} mg",
        f"• Mezzogiorno ({schedule.timings[1]}): {fmt(schedule.midday)} mg",
    ]
    if schedule.evening > 0:
        lines.append(f"• Sera ({schedule.timings[2]}): {fmt(schedule.evening)} mg")
    lines += [
        "",
        "💊 CONVERSIONE PRATICA (25mg = 1 compressa):",
        f"• Mattina: {fmt(schedule.morning)}mg = {quarters_label(schedule.morning)}",
        f"• Mezzogiorno: {fmt(schedule.midday)}mg = {quarters_label(schedule.midday)}",
    ]
    if schedule.evening > 0:
        lines.append(f"• Sera: {fmt(schedule.evening)}mg = {quarters_label(schedule.evening)}")
    lines.append("⚠️ Le compresse possono essere divise SOLO in quarti (6.25mg)")
    return ReportSection("💊 TERAPIA GLUCOCORTICOIDE", lines)


def mineralocorticoid_section(current: float, recommended: float, reason: str) -> ReportSection:
    return ReportSection("🧂 TERAPIA MINERALCORTICOIDE", [
        f"Florinef attuale: {fmt(current)} mg/die",
        f"Florinef raccomandato: {fmt(recommended)} mg/die",
        f"Motivazione: {reason}",
    ])


def alerts_section(alerts: List[str]) -> Optional[ReportSection]:
    if not alerts:
        return None
    return ReportSection("⚠️ ALERT CLINICI", list(alerts), rule_len=20)


def drug_interactions_section(analysis: DrugAnalysisResult, base_dose: float,
                              adjusted_dose: float) -> Optional[ReportSection]:
    if not analysis.detected:
        return None
    lines = ["", f"📋 FARMACI RILEVATI: {len(analysis.detected)}"]
    for drug in analysis.detected:
        lines += [
            "",
            f"{SEVERITY_ICONS[drug.severity]} {drug.drug_name.upper()} ({drug.severity.upper()})",
            f"   Varianti rilevate: {', '.join(drug.detected_variants)}",
        ]
        if drug.dose_adjustment:
            lines.append(f"   Aggiustamento dose: {drug.dose_adjustment:+d}%")
        if drug.recommendations:
            lines.append("   Raccomandazioni:")
            lines += [f"     • {rec}" for rec in drug.recommendations]

    if analysis.total_dose_adjustment:
        lines += [
            "",
            "📊 EFFETTO CUMULATIVO:",
            f"   Aggiustamento totale dose: {analysis.total_dose_adjustment:+d}%",
            f"   Dose base clinica: {fmt(base_dose)} mg",
            f"   Dose aggiustata finale: {fmt(adjusted_dose)} mg",
        ]
    if analysis.recommendations:
        lines += ["", "📌 RACCOMANDAZIONI GENERALI:"]
        lines += [f"   • {rec}" for rec in analysis.recommendations]
    return ReportSection("💊 INTERFERENZE FARMACOLOGICHE RILEVATE", lines, rule="=", rule_len=45)


def drug_adjustment_note(analysis: DrugAnalysisResult, base_dose: float, adjusted_dose: float) -> str:
    direction = "AUMENTO" if analysis.total_dose_adjustment > 0 else "RIDUZIONE"
    return (
        "\n\n💊 AGGIUSTAMENTO PER INTERFERENZE FARMACOLOGICHE:\n"
        f"• {direction} dose del {abs(analysis.total_dose_adjustment)}% per interazioni farmacologiche\n"
        f"• Dose base clinica: {fmt(base_dose)}mg → Dose aggiustata: {fmt(adjusted_dose)}mg\n"
        f"• Farmaci rilevati: {', '.join(d.drug_name for d in analysis.detected)}"
    )


def _erhc_options(score: ERHCCandidacyScore, current_dose: float) -> List[str]:
    plenadren = convert_dose_between_formulations(current_dose, "cortisone_acetate", "plenadren")
    efmody = convert_dose_between_formulations(current_dose, "cortisone_acetate", "efmody")
    split = efmody_split(efmody)
    lines = [
        "💊 VALUTAZIONE FORMULAZIONI A RILASCIO PROLUNGATO (ER-HC)",
        "",
        f"📊 SCORE CANDIDATURA: {score.total_score}/100 - {score.category.upper()}",
        f"Priorità: {score.priority.upper()}",
        "",
        score.recommendation,
        "",
        "🔍 ANALISI FATTORI (dettaglio):",
    ]
    for factor in score.factors:
        lines.append(f"• {factor.name}: {factor.score}/{factor.weight} punti")
        lines.append(f"  Motivazione: {factor.reason}")
    lines += [
        "",
        "📋 OPZIONI TERAPEUTICHE:",
        "",
        f"1️⃣ PLENADREN {fmt(plenadren)}mg",
        "   • Monosomministrazione mattutina (07:00-08:00)",
        "   • Rilascio dual-phase (immediato + prolungato)",
        "   • Benefici dimostrati:",
        *[f"     - {b}" for b in FORMULATIONS["plenadren"].benefits[1:]],
        "   • Indicato per: scarsa aderenza, multi-somministrazioni, segni Cushingoidi",
        "",
        f"2️⃣ EFMODY {fmt(efmody)}mg",
        "   • Doppia somministrazione circadiana:",
        f"     - Sera (23:00): {fmt(split['evening'])}mg",
        f"     - Mattina (07:00): {fmt(split['morning'])}mg",
        "   • Ripristina ritmo circadiano fisiologico",
        "   • Particolarmente indicato per:",
        "     - Astenia mattutina marcata",
        "     - Disturbi del sonno",
        "     - Desiderio picco cortisolo al risveglio",
        "",
        "⚠️ CONTROINDICAZIONI ER-HC:",
        *[f"   • {c}" for c in FORMULATIONS["plenadren"].contraindications],
        "",
        "💰 CONSIDERAZIONI ECONOMICHE:",
        "   • Costo: ER-HC >> IR (rapporto ~10:1)",
        "   • Valutare copertura SSN/assicurativa",
        "   • Considerare rapporto costo-beneficio individuale",
        "",
        "⚕️ NECESSITÀ COMUNQUE IR-HC/CA:",
        "   • Protocolli stress acuto",
        "   • Situazioni emergenza",
        "   • Backup per problemi gastrointestinali",
    ]
    return lines


def _switch_lines(current_dose: float, morning_fatigue: bool) -> List[str]:
    plenadren = generate_switch_protocol("cortisone_acetate", "plenadren", current_dose)
    lines = [
        "",
        "🔄 PROTOCOLLI DI SWITCH (se approvato)",
        "=" * 40,
        "",
        "📋 OPZIONE A: SWITCH A PLENADREN",
        f"Dose attuale CA: {fmt(plenadren.current_dose)}mg → Dose target Plenadren: {fmt(plenadren.target_dose)}mg",
        f"Durata switch: {plenadren.duration_days} giorni",
        "",
        "📅 PIANO DETTAGLIATO:",
    ]
    for step in plenadren.steps:
        lines.append(f"Giorno {step.day}:")
        if step.old_formulation_dose > 0:
            lines.append(f"  • {plenadren.from_formulation}: {fmt(step.old_formulation_dose)}mg")
        if step.new_formulation_dose > 0:
            lines.append(f"  • {plenadren.to_formulation}: {fmt(step.new_formulation_dose)}mg")
        lines.append(f"  ℹ️  {step.instructions}")
        lines.append("")
    lines.append("⚠️ AVVERTENZE IMPORTANTI:")
    lines += plenadren.warnings
    lines += ["", "📊 MONITORAGGIO POST-SWITCH:"]
    lines += plenadren.monitoring

    if morning_fatigue:
        efmody = generate_switch_protocol("cortisone_acetate", "efmody", current_dose)
        split = efmody_split(efmody.target_dose)
        lines += [
            "",
            "─" * 40,
            "",
            "📋 OPZIONE B: SWITCH A EFMODY (per astenia mattutina)",
            f"Dose attuale CA: {fmt(efmody.current_dose)}mg → Dose target Efmody: {fmt(efmody.target_dose)}mg",
            "",
            "📅 SCHEMA CIRCADIANO:",
            f"  • Sera (23:00): {fmt(split['evening'])}mg",
            f"  • Mattina (07:00): {fmt(split['morning'])}mg",
            "",
            "💡 VANTAGGI SPECIFICI:",
            "  • Picco cortisolo fisiologico al risveglio",
            "  • Migliore energia mattutina",
            "  • Qualità del sonno ottimizzata",
        ]

    lines += [
        "",
        "🏥 REQUISITI PRE-SWITCH:",
        "  • Approvazione specialista endocrinologo",
        "  • Valutazione funzionalità gastrointestinale",
        "  • Counseling su costi e aspettative",
        "  • Educazione protocolli stress con ER-HC",
        "  • Disponibilità backup IR-HC per emergenze",
    ]
    return lines


def erhc_section(score: ERHCCandidacyScore, current_dose: float, qol_critical: bool,
                 morning_fatigue: bool) -> Optional[ReportSection]:
    """Shown for score >= 40 or critical QoL; switch protocols from score >= 60."""
    if score.total_score >= 40:
        lines = _erhc_options(score, current_dose)
    elif qol_critical:
        lines = ["FORTE raccomandazione per formulazioni ER-HC data la scarsa QoL"]
    else:
        return None
    if score.total_score >= 60:
        lines += _switch_lines(current_dose, morning_fatigue)
    return ReportSection("🔬 FORMULAZIONI AVANZATE (ER-HC)", lines, rule_len=35)


def schedule_section(schedule: DosingSchedule) -> Optional[ReportSection]:
    if not schedule.optimization_factors:
        return None
    lines = [f"Schema selezionato: {schedule.rationale}", "", "Fattori considerati:"]
    lines += [f"  • {f}" for f in schedule.optimization_factors]
    return ReportSection("⏰ RAZIONALE SCHEMA TEMPORALE", lines, rule_len=35)


# domain label shown when the sub-score is 1 or 2
CRITICAL_DOMAINS = [
    ("fatigue", "Energia"),
    ("mood_changes", "Umore"),
    ("work_capacity", "Lavoro"),
    ("social_life", "Socialità"),
    ("sleep_quality", "Sonno"),
    ("treatment_satisfaction", "Terapia"),
]


def qol_lines(record: PatientRecord, physical_symptoms: bool, cushingoid_signs: bool) -> List[str]:
    lines: List[str] = []
    avg = record.average_qol()
    if avg is not None:
        lines.append("💭 ANALISI QUALITÀ DELLA VITA (AddiQoL):")
        lines.append(f"📊 Punteggio medio: {avg:.1f}/5.0 ({len(record.qol_scores())}/8 domini valutati)")
        if avg < 2.5:
            lines += [
                "🔴 QoL CRITICA - Intervento immediato necessario:",
                "  • Revisione completa schema terapeutico",
                "  • Candidato PRIORITARIO per ER-HC (Plenadren/Efmody)",
                "  • Valutazione supporto psicologico",
                "  • Follow-up ravvicinato (2-4 settimane)",
            ]
        elif avg < 3.5:
            lines += [
                "🟡 QoL SUBOTTIMALE - Ottimizzazione terapeutica:",
                "  • Considerare aggiustamento posologia",
                "  • Valutazione candidatura ER-HC",
                "  • Controllo aderenza terapeutica",
                "  • Follow-up in 6-8 settimane",
            ]
        elif avg >= 4.0:
            lines += [
                "🟢 QoL BUONA - Mantenimento terapia:",
                "  • Schema terapeutico efficace",
                "  • Mantenere dosaggi attuali",
                "  • Follow-up standard (3-6 mesi)",
            ]
        else:
            lines += [
                "🟠 QoL ACCETTABILE - Monitoraggio:",
                "  • Possibilità di ottimizzazione",
                "  • Valutare fattori aggravanti",
                "  • Follow-up in 8-12 settimane",
            ]
        critical = [label for name, label in CRITICAL_DOMAINS
                    if getattr(record, name) is not None and getattr(record, name) <= 2]
        if critical:
            lines.append(f"⚠️ Domini critici (≤2/5): {', '.join(critical)}")

    if physical_symptoms:
        lines += [
            "🔍 CORRELAZIONE SINTOMI-QoL:",
            "  • Sintomi fisici influenzano negativamente la QoL",
            "  • Ottimizzazione terapia mineralcorticoide indicata",
        ]
    if cushingoid_signs:
        lines += [
            "🔍 CORRELAZIONE SINTOMI-QoL:",
            "  • Possibili effetti Cushingoidi subclinici",
            "  • Riduzione graduale dose può migliorare QoL",
        ]
    return lines


def qol_section(lines: List[str]) -> Optional[ReportSection]:
    if not lines:
        return None
    return ReportSection("💭 VALUTAZIONE QUALITÀ DELLA VITA", list(lines), rule_len=35)


def monitoring_section(lines: List[str]) -> Optional[ReportSection]:
    if not lines:
        return None
    return ReportSection("📅 MONITORAGGIO", list(lines), rule_len=15)


# ---------- reference sections (always shown) ----------
STRESS_PROTOCOLS = [
    "🌡️ FEBBRE E INFEZIONI (evidenze 2024-2025):",
    "  • 37.5-38°C: dose extra +50% per 24-48h",
    "  • >38°C: raddoppiare dose per 48-72h",
    "  • >38.5°C + prostrazione: Flebocortid 50-100mg IM",
    "  • Sepsi/infezioni gravi: 200-300mg/die HC ev per 48-72h",
    "",
    "🤢 DISTURBI GASTROINTESTINALI:",
    "  • Vomito <2h da assunzione: ripetere dose",
    "  • Vomito persistente: Flebocortid 100mg IM stat",
    "  • Diarrea grave (>6 scariche): +100mg HC per os + monitorare elettroliti",
    "  • Impossibilità terapia orale >6h = EMERGENZA",
    "",
    "🏥 PROCEDURE MEDICHE E CHIRURGICHE:",
    "  • Anestesia locale/procedure minori: dose normale",
    "  • Endoscopie, biopsie: doppia dose orale 2h prima",
    "  • Chirurgia minore: 50-75mg HC IM pre-operatorio",
    "  • Chirurgia maggiore: 100-150mg HC IM + 200-300mg/24h ev",
    "  • Terapia intensiva: 200-400mg/24h HC ev in infusione continua",
    "",
    "🧠 STRESS PSICOFISICO (nuove evidenze):",
    "  • Stress emotivo intenso: +25-50% dose per 24-48h",
    "  • Attività fisica intensa (>60min): +5-10mg HC pre-attività",
    "  • Viaggi lunghi/jet lag: mantenere orari originali per 48h",
    "  • Esami medici stressanti (RM, TAC): +10mg HC 2h prima",
    "",
    "💊 INTERAZIONI FARMACOLOGICHE (aggiornate 2024):",
    "  • Induttori CYP3A4 (fenitoina, carbamazepina, rifampicina): ↗️ dose GC +25-50%",
    "  • Inibitori CYP3A4 (ritonavir, claritromicina, itraconazolo): ↘️ dose GC -25%",
    "  • Diuretici, ACE-inibitori: monitorare elettroliti settimanalmente",
    "  • Anti-coagulanti: monitorare INR (possibile potenziamento)",
    "  • Vaccini vivi: evitare se dose >20mg/die HC equivalente",
]


def stress_section() -> ReportSection:
    return ReportSection("📚 PROTOCOLLI GESTIONE STRESS (aggiornati 2024-2025)", list(STRESS_PROTOCOLS), rule_len=45)


def conversion_table_section(current_dose: float) -> ReportSection:
    hc = convert_dose_between_formulations(current_dose, "cortisone_acetate", "hydrocortisone")
    plenadren = convert_dose_between_formulations(current_dose, "cortisone_acetate", "plenadren")
    efmody = convert_dose_between_formulations(current_dose, "cortisone_acetate", "efmody")
    return ReportSection("📊 TABELLA CONVERSIONE FORMULAZIONI", [
        "Dose equivalenti per terapia sostitutiva:",
        "",
        "┌─────────────────────────┬──────────────┬─────────────┐",
        "│ Formulazione            │ Dose eq.     │ Somm./die   │",
        "├─────────────────────────┼──────────────┼─────────────┤",
        f"│ Cortone Acetato (IR)    │ {current_dose:.1f} mg    │ 2-3 volte   │",
        f"│ Idrocortisone (IR)      │ {hc:.1f} mg    │ 3 volte     │",
        f"│ Plenadren (ER)          │ {plenadren:.1f} mg    │ 1 volta     │",
        f"│ Efmody (ER)             │ {efmody:.1f} mg    │ 2 volte     │",
        "└─────────────────────────┴──────────────┴─────────────┘",
        "",
        "💡 Note:",
        "• Dosi ER ridotte per minore esposizione complessiva",
        "• Conversioni da verificare individualmente",
        "• Switch richiede supervisione specialistica",
    ], rule_len=50)


def disclaimer_section() -> ReportSection:
    return ReportSection("⚠️ DISCLAIMER", [
        "Algoritmo basato su linee guida AME 2023 e letteratura 2024-2025",
        "(JCEM 2025, evidenze ER-HC, protocolli stress aggiornati).",
        "Le raccomandazioni sono indicative e devono essere",
        "sempre valutate dal medico specialista in relazione",
        "al quadro clinico completo del paziente.",
        "",
        "🔬 EVIDENZE SCIENTIFICHE:",
        "• ER-HC riducono peso (-1-2kg), PA (-5mmHg), HbA1c (-0.3-0.6%)",
        "• Miglioramento qualità vita (AddiQoL +4 punti)",
        "• Plenadren: -20% esposizione cortisolo vs IR-HC",
        "• Efmody: ripristina ritmo circadiano fisiologico",
    ], rule_len=15)


def prediction_section(prediction: PredictiveAnalysis, profile: PatientProfile) -> ReportSection:
    distribution = "%-".join(str(x) for x in profile.response_patterns.optimal_distribution)
    lines = [
        f"• Dose ottimale predetta: {fmt(prediction.recommended_dose)}mg/die",
        f"• Confidence: {fmt(prediction.confidence)}%",
        f"• Distribuzione suggerita: {distribution}%",
    ]
    if prediction.expected_outcome.acth_improvement > 50:
        improvement = int(round_half_up(prediction.expected_outcome.acth_improvement, 1))
        lines.append(f"• Miglioramento ACTH atteso: {improvement}%")
    if prediction.risk_factors:
        lines.append("⚠️ Fattori di rischio: " + ", ".join(prediction.risk_factors))
    return ReportSection("🧠 RACCOMANDAZIONI PERSONALIZZATE (AI-Enhanced):", lines, rule_len=0)


def contacts_section() -> ReportSection:
    return ReportSection("📞 In caso di dubbi o emergenze:", [
        "• Contattare endocrinologo di riferimento",
        "• Emergenze: 118",
        "• AiPAd: associazione@aipai.it",
    ], rule_len=0)
