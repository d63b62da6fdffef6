# app.py
import logging
import uuid
from datetime import date, datetime

import pandas as pd
import streamlit as st

from engine import run_algorithm
from src.addidose import config
from src.addidose.importers import (
    load_records_csv,
    parse_lab_results,
    parse_ocr_text,
    parse_text_document,
    records_to_frame,
)
from src.addidose.models import (
    EFFECTIVENESS_SCORES,
    CurrentTherapy,
    PatientDemographics,
    PatientProfile,
    PatientRecord,
    safe_num,
)
from src.addidose.prediction import add_therapy_entry, analyze_patient_response
from src.addidose.report import APPLIED_MESSAGE
from src.addidose.storage import ProfileStore, ProfileStoreError
from src.addidose.therapy import (
    auto_correct_to_quarters,
    quarters_label,
    validate_quarter_doses,
    validate_therapy_values,
)
from src.addidose.units import UNIT_CHOICES, convert, fields_to_standard, reference_ranges

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger("addidose.app")

st.set_page_config(page_title="AddiDose++ - Malattia di Addison", layout="wide")
st.title("AddiDose++ · Terapia sostitutiva nella Malattia di Addison")

st.markdown(
    "Inserire i parametri clinici (i campi opzionali possono restare vuoti). "
    "Premere **Esegui algoritmo** per ottenere le raccomandazioni secondo le linee guida AME."
)

# ---------- session state ----------
defaults = {
    "records": [],
    "therapy": CurrentTherapy(),
    "proposed": None,
    "result": None,
    "patient_id": None,
    "prefill": None,
}
for key, value in defaults.items():
    if key not in st.session_state:
        st.session_state[key] = value


@st.cache_resource
def get_store(path: str) -> ProfileStore:
    return ProfileStore(path)


try:
    store = get_store(str(config.PROFILE_STORE_PATH))
except ProfileStoreError as e:
    st.error(f"Archivio pazienti non leggibile: {e}")
    store = None


def current_patient():
    if store is None or st.session_state.patient_id is None:
        return None
    return store.get(st.session_state.patient_id)


# ---------- sidebar: units, learning mode, patients ----------
with st.sidebar:
    st.header("Unità di misura")
    units = {param: st.selectbox(param.upper(), choices, key=f"unit_{param}")
             for param, choices in UNIT_CHOICES.items()}
    learning_mode = st.checkbox("Modalità apprendimento (AI)", value=config.LEARNING_MODE)

    st.header("Paziente")
    if store is not None:
        term = st.text_input("Cerca paziente (nome o diagnosi)", value="")
        matches = store.search(term)
        options = [None] + [p.id for p in matches]
        labels = {None: "(nessuno)", **{p.id: p.full_name for p in matches}}
        st.session_state.patient_id = st.selectbox(
            "Paziente attivo", options, format_func=lambda i: labels.get(i, i),
            index=options.index(st.session_state.patient_id) if st.session_state.patient_id in options else 0,
        )

        with st.expander("Nuovo paziente"):
            with st.form("new_patient"):
                first = st.text_input("Nome")
                last = st.text_input("Cognome")
                age = st.number_input("Età", min_value=0, max_value=120, value=40)
                weight = st.number_input("Peso (kg)", min_value=0.0, max_value=300.0, value=70.0)
                height = st.number_input("Altezza (cm)", min_value=0.0, max_value=250.0, value=170.0)
                sex = st.selectbox("Sesso", ["M", "F"])
                if st.form_submit_button("Crea paziente") and first and last:
                    profile = PatientProfile(
                        id=uuid.uuid4().hex[:12],
                        first_name=first,
                        last_name=last,
                        demographics=PatientDemographics(age=int(age), weight=weight, height=height, sex=sex),
                        last_updated=datetime.now().isoformat(timespec="seconds"),
                    )
                    store.upsert(profile)
                    st.session_state.patient_id = profile.id
                    st.success(f"Paziente {profile.full_name} creato")

# ---------- record form ----------
prefill = st.session_state.prefill or PatientRecord(date=date.today().isoformat())
ranges = reference_ranges(units)


def prefilled(param):
    value = convert(getattr(prefill, param), param, config.STANDARD_UNITS[param], units[param])
    return "" if value is None else f"{value:g}"


with st.form("record_form"):
    st.subheader("Nuovo record clinico")
    col1, col2, col3 = st.columns(3)
    with col1:
        rec_date = st.date_input("Data", value=date.today())
        na = st.text_input(f"Sodio ({units['na']}) [{ranges['na']}]", value=prefilled("na"))
        k = st.text_input(f"Potassio ({units['k']}) [{ranges['k']}]", value=prefilled("k"))
        acth = st.text_input(f"ACTH ({units['acth']}) [{ranges['acth']}]", value=prefilled("acth"))
        cortisol = st.text_input(f"Cortisolo ({units['cortisol']}) [{ranges['cortisol']}]",
                                 value=prefilled("cortisol"))
        renin = st.text_input(f"Renina ({units['renin']}) [{ranges['renin']}]", value="")
        glucose = st.text_input("Glicemia (mg/dL)", value="")
    with col2:
        bp_sup_sys = st.text_input(f"PA supina sistolica ({units['bp']})", value="")
        bp_sup_dia = st.text_input(f"PA supina diastolica ({units['bp']})", value="")
        bp_orth_sys = st.text_input(f"PA ortostatica sistolica ({units['bp']})", value="")
        bp_orth_dia = st.text_input(f"PA ortostatica diastolica ({units['bp']})", value="")
        cortisol_24h = st.text_input(f"Cortisolo urinario 24h [{ranges['cortisol_urinary_24h']}]", value="")
        cortisol_90 = st.text_input(f"Cortisolo 90' post-dose [{ranges['cortisol_post_90min']}]", value="")
        hypoglycemia = st.checkbox("Episodi di ipoglicemia")
        crave_salt = st.checkbox("Desiderio di sale")
        vertigo = st.checkbox("Vertigini")
    with col3:
        st.write("Qualità della vita (1-5, 0 = non valutato):")
        qol = {
            "fatigue": st.slider("Stanchezza (5 = esausto)", 0, 5, 0),
            "mood_changes": st.slider("Umore", 0, 5, 0),
            "work_capacity": st.slider("Capacità lavorativa", 0, 5, 0),
            "social_life": st.slider("Vita sociale", 0, 5, 0),
            "sleep_quality": st.slider("Qualità del sonno", 0, 5, 0),
            "physical_appearance": st.slider("Aspetto fisico", 0, 5, 0),
            "overall_wellbeing": st.slider("Benessere generale", 0, 5, 0),
            "treatment_satisfaction": st.slider("Soddisfazione terapia", 0, 5, 0),
        }
    other_medications = st.text_input("Altri farmaci (testo libero, es. rifampicina, ramipril)", value="")
    submitted = st.form_submit_button("Aggiungi record")


def build_record():
    measured = fields_to_standard({
        "na": safe_num(na),
        "k": safe_num(k),
        "acth": safe_num(acth),
        "cortisol": safe_num(cortisol),
        "cortisol_urinary_24h": safe_num(cortisol_24h),
        "cortisol_post_90min": safe_num(cortisol_90),
        "renin": safe_num(renin),
        "glucose": safe_num(glucose),
        "bp_sup_sys": safe_num(bp_sup_sys),
        "bp_sup_dia": safe_num(bp_sup_dia),
        "bp_orth_sys": safe_num(bp_orth_sys),
        "bp_orth_dia": safe_num(bp_orth_dia),
    }, units)

    therapy = st.session_state.therapy
    return PatientRecord.from_dict({
        "date": rec_date.isoformat(),
        **measured,
        "hypoglycemia": hypoglycemia,
        "crave_salt": crave_salt,
        "vertigo": vertigo,
        "glucocorticoid_dose": f"{therapy.total:g}",
        "florinef_dose": f"{therapy.florinef:g}",
        "other_medications": other_medications,
        **{name: score or None for name, score in qol.items()},
    })


if submitted:
    st.session_state.records = st.session_state.records + [build_record()]
    st.session_state.prefill = None
    st.success("Record aggiunto")

# ---------- import ----------
with st.expander("Importa dati (testo, OCR, CSV, documento clinico)"):
    lab_text = st.text_area("Referto di laboratorio (una riga per prelievo)", value="")
    if st.button("Importa referto") and lab_text.strip():
        imported = parse_lab_results(lab_text)
        st.session_state.records = st.session_state.records + imported
        st.info(f"{len(imported)} record importati")

    ocr_text = st.text_area("Testo OCR (precompila il modulo)", value="")
    if st.button("Precompila da OCR") and ocr_text.strip():
        st.session_state.prefill = parse_ocr_text(ocr_text)
        st.rerun()

    csv_file = st.file_uploader("File CSV", type=["csv"])
    if csv_file is not None and st.button("Importa CSV"):
        try:
            imported = load_records_csv(csv_file)
        except (ValueError, pd.errors.ParserError) as e:
            st.error(f"CSV non valido: {e}")
        else:
            st.session_state.records = st.session_state.records + imported
            st.info(f"{len(imported)} record importati")

    doc_text = st.text_area("Documento clinico (crea o aggiorna il profilo paziente)", value="")
    if st.button("Analizza documento") and doc_text.strip():
        doc = parse_text_document(doc_text)
        st.write(f"Affidabilità estrazione: {doc.confidence}%")
        if store is not None and doc.first_name and doc.last_name:
            profile = PatientProfile(
                id=uuid.uuid4().hex[:12],
                first_name=doc.first_name,
                last_name=doc.last_name,
                demographics=PatientDemographics(**doc.demographics),
                therapy_history=doc.therapy_history,
                last_updated=datetime.now().isoformat(timespec="seconds"),
            )
            profile = profile.with_history(profile.therapy_history, analyze_patient_response(profile))
            store.upsert(profile)
            st.session_state.patient_id = profile.id
            st.success(f"Profilo creato per {profile.full_name}")
        else:
            st.warning("Nome e cognome non riconosciuti: profilo non creato")

# ---------- records table ----------
st.subheader("Storico record")
if st.session_state.records:
    st.dataframe(records_to_frame(st.session_state.records), use_container_width=True)
    if st.button("Svuota record"):
        st.session_state.records = []
        st.rerun()
else:
    st.info("Nessun record inserito.")

# ---------- therapy editor ----------
st.subheader("Terapia attuale")
therapy = st.session_state.therapy
tcol1, tcol2, tcol3, tcol4 = st.columns(4)
with tcol1:
    morning = st.number_input("Mattina (mg)", min_value=0.0, max_value=60.0, value=therapy.morning, step=0.25)
with tcol2:
    midday = st.number_input("Mezzogiorno (mg)", min_value=0.0, max_value=60.0, value=therapy.midday, step=0.25)
with tcol3:
    evening = st.number_input("Sera (mg)", min_value=0.0, max_value=60.0, value=therapy.evening, step=0.25)
with tcol4:
    florinef = st.number_input("Florinef (mg)", min_value=0.0, max_value=0.5, value=therapy.florinef,
                               step=0.025, format="%.3f")

edited = CurrentTherapy(morning=morning, midday=midday, evening=evening, florinef=florinef)
errors = validate_therapy_values(edited)
for err in errors:
    st.warning(err)
ecol1, ecol2 = st.columns(2)
with ecol1:
    if st.button("Salva terapia", disabled=bool(errors)):
        st.session_state.therapy = edited
        st.success("Terapia salvata")
with ecol2:
    if st.button("Arrotonda ai quarti"):
        st.session_state.therapy = auto_correct_to_quarters(edited)
        st.rerun()

# ---------- run ----------
if st.button("Esegui algoritmo", type="primary"):
    st.session_state.result = run_algorithm(
        st.session_state.records, st.session_state.therapy, current_patient(), learning_mode,
    )
    st.session_state.proposed = st.session_state.result.proposed_therapy

result = st.session_state.result
if result is not None:
    st.subheader("Raccomandazioni")
    if result.is_emergency:
        st.error("🚨 POSSIBILE CRISI SURRENALICA - azione immediata richiesta")
    for note in result.notifications:
        st.info(note)
    st.code(result.report, language=None)

    if result.fired_rules:
        # Use an expander to show explanations (recommended for Streamlit)
        with st.expander("Regole attivate"):
            for e in result.fired_rules:
                if e["id"] == "R_FALLBACK":
                    continue
                st.markdown(f"### Regola: {e['id']}")
                st.write(f"**Motivo:** {e['description']}")
                if e["recommendation"]:
                    st.write(f"**Raccomandazione:** {e['recommendation']}")
                if e["dose_delta"]:
                    st.write(f"**Variazione dose:** {e['dose_delta']:+g} mg")
                if e["guideline_ref"]:
                    st.write(f"**Riferimento:** {e['guideline_ref']}")
                st.markdown("---")

    proposed = st.session_state.proposed
    if proposed is not None:
        st.subheader("Terapia proposta")
        st.table(pd.DataFrame([
            {"Somministrazione": "Mattina", "mg": proposed.morning, "Compresse": quarters_label(proposed.morning)},
            {"Somministrazione": "Mezzogiorno", "mg": proposed.midday, "Compresse": quarters_label(proposed.midday)},
            {"Somministrazione": "Sera", "mg": proposed.evening, "Compresse": quarters_label(proposed.evening)},
            {"Somministrazione": "Florinef", "mg": proposed.florinef, "Compresse": "-"},
        ]))
        problems = validate_quarter_doses(proposed)
        for p in problems:
            st.warning(p)
        if st.button("Applica terapia proposta", disabled=bool(problems)):
            st.session_state.therapy = proposed
            st.session_state.proposed = None
            st.session_state.result = None
            logger.info("Proposed therapy applied: %s", proposed)
            st.success(APPLIED_MESSAGE)

# ---------- feedback on the current therapy ----------
patient = current_patient()
if patient is not None:
    st.subheader(f"Storico terapeutico - {patient.full_name}")
    if patient.therapy_history:
        st.dataframe(pd.DataFrame([
            {"Data": h.date, "Totale (mg)": h.therapy.total, "Florinef": h.therapy.florinef,
             "Efficacia": h.effectiveness or "-", "Motivo": h.reason}
            for h in patient.therapy_history
        ]), use_container_width=True)
    patterns = patient.response_patterns
    st.caption(
        f"Stabilità {patterns.stability_score:.0f}/100 · distribuzione ottimale "
        f"{'-'.join(str(x) for x in patterns.optimal_distribution)}% · pendenza dose-risposta "
        f"{patterns.dose_response_slope:.2f}"
    )
    with st.form("feedback"):
        effectiveness = st.selectbox("Efficacia della terapia attuale", list(EFFECTIVENESS_SCORES))
        side_effects = st.text_input("Effetti collaterali (separati da virgola)", value="")
        if st.form_submit_button("Registra in storico"):
            updated = add_therapy_entry(
                patient, st.session_state.therapy, effectiveness,
                [s.strip() for s in side_effects.split(",") if s.strip()],
            )
            try:
                store.upsert(updated)
            except ProfileStoreError as e:
                st.error(str(e))
            else:
                st.success("Storico aggiornato")
