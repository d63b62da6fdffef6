import pytest

from engine import ClinicalFlags, adjust_florinef, get_engine, run_algorithm
from src.addidose.models import CurrentTherapy, PatientProfile, PatientRecord
from src.addidose.prediction import add_therapy_entry
from src.addidose.report import NO_DATA_MESSAGE


def record(**kw):
    return PatientRecord(date="2025-03-01", **kw)


def test_no_records_returns_message_verbatim():
    res = run_algorithm([], CurrentTherapy())
    assert res.report == NO_DATA_MESSAGE
    assert res.proposed_therapy is None


def test_missing_labs_raise_no_flags():
    flags = ClinicalFlags.from_record(record())
    assert flags == ClinicalFlags()
    res = run_algorithm([record()], CurrentTherapy())
    # fallback rule: dose kept, redistributed 50/30/20
    assert res.proposed_therapy.total == 31.25
    assert res.proposed_therapy.florinef == 0.1
    assert [r["id"] for r in res.fired_rules] == ["R_FALLBACK", "R_FALLBACK"]


def test_adrenal_crisis_short_circuits():
    res = run_algorithm([record(na=130, k=5.5, bp_sup_sys=90)], CurrentTherapy())
    assert res.is_emergency
    assert "🚨 EMERGENZA MEDICA" in res.report
    assert "• AZIONE IMMEDIATA: Flebocortid 100mg IM" in res.report
    assert "TERAPIA GLUCOCORTICOIDE" not in res.report
    assert res.proposed_therapy is None
    assert res.schedule is None


def test_normal_acth_reduces_dose():
    res = run_algorithm([record(na=140, k=4.2, acth=30)], CurrentTherapy())
    assert "Dose raccomandata: 25 mg/die" in res.report
    assert "ACTH nei limiti normali" in res.report
    p = res.proposed_therapy
    assert (p.morning, p.midday, p.evening) == (16.75, 8.25, 0.0)


def test_normal_acth_outranks_underdose_signs():
    fired = get_engine().evaluate(ClinicalFlags(normal_acth=True, hyponatremia=True))
    assert [r.id for r in fired] == ["R_GC_NORMAL_ACTH", "R_GC_UNDERDOSE"]


def test_hyponatremia_increases_both_hormones():
    res = run_algorithm([record(na=132, k=4.5)], CurrentTherapy())
    assert "↗️ Aumento dose per: iponatremia" in res.report
    p = res.proposed_therapy
    assert (p.morning, p.midday, p.evening) == (18.75, 11.25, 7.5)
    assert p.florinef == 0.125


def test_hypertension_without_hypokalemia_reduces():
    res = run_algorithm([record(na=140, k=4.2, bp_sup_sys=150, bp_sup_dia=85)], CurrentTherapy())
    assert res.proposed_therapy.total == 25
    assert res.proposed_therapy.florinef == 0.075
    assert "Riduzione dose per ipertensione ben controllata" in res.report


def test_dose_clamped_to_bounds():
    high = run_algorithm([record(na=130)], CurrentTherapy(25, 15, 10, 0.1))
    assert high.proposed_therapy.total == 50
    low = run_algorithm([record(acth=20)], CurrentTherapy(10, 5, 0, 0.1))
    assert low.proposed_therapy.total == 15
    assert (low.proposed_therapy.morning, low.proposed_therapy.midday) == (10.0, 5.0)


def test_drug_adjustment_applied_after_base_dose():
    res = run_algorithm([record(na=140, k=4.2, other_medications="Rifadin 600mg")], CurrentTherapy())
    # 31.25 * 1.5 = 46.875 -> 47
    assert "Dose raccomandata: 47 mg/die" in res.report
    assert "AUMENTO dose del 50%" in res.report
    assert "💊 INTERFERENZE FARMACOLOGICHE RILEVATE" in res.report
    assert res.proposed_therapy.total == 47


@pytest.mark.parametrize("rec", [
    dict(na=128, k=4.0, fatigue=5, glucose=60),
    dict(acth=12, bp_sup_sys=160),
    dict(na=140, k=3.2, bp_sup_sys=150, other_medications="fenitoina, estradiolo"),
    dict(na=136, other_medications="ritonavir itraconazolo"),
    dict(work_capacity=1, social_life=2, sleep_quality=1),
])
@pytest.mark.parametrize("therapy", [CurrentTherapy(), CurrentTherapy(10, 5, 0, 0.05), CurrentTherapy(30, 15, 5, 0.2)])
def test_proposal_within_bounds_and_quarters(rec, therapy):
    p = run_algorithm([record(**rec)], therapy).proposed_therapy
    assert 15 <= p.total <= 50
    for dose in (p.morning, p.midday, p.evening):
        assert dose * 4 == int(dose * 4)
    assert 0.05 <= p.florinef <= 0.2


def test_only_latest_record_is_evaluated():
    res = run_algorithm([record(na=130, k=5.5, bp_sup_sys=90), record(na=140, k=4.2)], CurrentTherapy())
    assert not res.is_emergency


def test_erhc_switch_protocols_for_good_candidates():
    rec = record(na=140, k=3.2, bp_sup_sys=150, fatigue=5, mood_changes=1, work_capacity=1,
                 social_life=1, sleep_quality=1)
    res = run_algorithm([rec], CurrentTherapy(25, 10, 5, 0.1))
    assert res.erhc_score.total_score >= 60
    assert "🔄 PROTOCOLLI DI SWITCH (se approvato)" in res.report
    assert "📋 OPZIONE B: SWITCH A EFMODY (per astenia mattutina)" in res.report


def test_personalized_proposal_blends_history():
    profile = PatientProfile(id="p1", first_name="Anna", last_name="Bianchi")
    profile = add_therapy_entry(profile, CurrentTherapy(18.75, 6.25, 6.25, 0.1), "excellent")
    profile = add_therapy_entry(profile, CurrentTherapy(20, 7.5, 5, 0.1), "excellent")
    res = run_algorithm([record(acth=100)], CurrentTherapy(), patient=profile, learning_mode=True)
    assert res.predictive.confidence == 90
    assert "🧠 RACCOMANDAZIONI PERSONALIZZATE (AI-Enhanced):" in res.report
    p = res.proposed_therapy
    assert (p.morning, p.midday, p.evening) == (30.0, 11.0, 9.0)
    assert "🎯 Alta affidabilità della previsione AI - Raccomandazione altamente personalizzata" in res.notifications


def test_adjust_florinef_one_sided_clamp():
    assert adjust_florinef(0.2, 0.025) == 0.2
    assert adjust_florinef(0.05, -0.025) == 0.05
    assert adjust_florinef(0.3, -0.025) == 0.275
    assert adjust_florinef(0.1, 0) == 0.1
