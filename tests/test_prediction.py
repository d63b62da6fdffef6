import pytest

from src.addidose.models import CurrentTherapy, PatientDemographics, PatientProfile, TherapyHistoryEntry
from src.addidose.prediction import (
    ExpectedOutcome,
    PredictiveAnalysis,
    add_therapy_entry,
    analyze_patient_response,
    calculate_optimal_distribution,
    generate_predictive_analysis,
    smart_notifications,
)
from src.addidose.report import prediction_section


def profile_with(*entries, age=40):
    history = [TherapyHistoryEntry(date=f"2025-0{i + 1}-01", therapy=t, effectiveness=e)
               for i, (t, e) in enumerate(entries)]
    return PatientProfile(id="x", first_name="Luca", last_name="Verdi",
                          demographics=PatientDemographics(age=age), therapy_history=history)


def test_defaults_with_short_history():
    p = analyze_patient_response(profile_with((CurrentTherapy(), "good")))
    assert p.optimal_distribution == (40, 30, 30)
    assert p.stability_score == 50
    assert p.dose_response_slope == 0.5


def test_response_pattern_from_history():
    prof = profile_with(
        (CurrentTherapy(18.75, 6.25, 6.25), "fair"),
        (CurrentTherapy(20, 7.5, 5), "good"),
        age=70,
    )
    p = analyze_patient_response(prof)
    # 1.25mg change rated good (3)
    assert p.dose_response_slope == pytest.approx(3.75)
    assert p.cortisone_to_acth == pytest.approx(0.375)
    assert p.stability_score == pytest.approx(62.5)
    assert p.average_qol == pytest.approx(125)
    assert p.stress_response == "low"
    # only the "good" entry counts: 20/32.5, 7.5/32.5, 5/32.5
    assert p.optimal_distribution == (62, 23, 15)


def test_optimal_distribution_ignores_poor_entries():
    history = [TherapyHistoryEntry("2025-01-01", CurrentTherapy(10, 10, 10), effectiveness="poor")]
    assert calculate_optimal_distribution(history) == (40, 30, 30)


def test_add_therapy_entry_returns_new_profile():
    base = PatientProfile(id="x", first_name="Luca", last_name="Verdi")
    updated = add_therapy_entry(base, CurrentTherapy(), "good", ["gonfiore"])
    assert base.therapy_history == []
    assert len(updated.therapy_history) == 1
    assert updated.therapy_history[0].side_effects == ["gonfiore"]
    assert updated.therapy_history[0].prescriber == "AddiDose++"


def test_add_therapy_entry_rejects_unknown_rating():
    with pytest.raises(ValueError):
        add_therapy_entry(PatientProfile(id="x", first_name="a", last_name="b"), CurrentTherapy(), "great")


def test_prediction_without_profile():
    pred = generate_predictive_analysis(80, CurrentTherapy(), None)
    assert pred.confidence == 30
    assert pred.recommended_dose == 31.25
    assert pred.reasoning == ["Analisi basata su linee guida standard", "Nessuna storia clinica disponibile"]
    assert smart_notifications(pred, None) == []


def test_prediction_with_profile_and_missing_acth():
    prof = profile_with((CurrentTherapy(), "good"), (CurrentTherapy(), "good"))
    prof = prof.with_history(prof.therapy_history, analyze_patient_response(prof))
    pred = generate_predictive_analysis(None, CurrentTherapy(), prof)
    assert pred.recommended_dose == 31.25
    assert pred.confidence == pytest.approx(77.5)
    assert pred.expected_outcome.acth_improvement == 0
    assert pred.reasoning[0] == "Basato su 2 episodi terapeutici"


def test_prediction_is_clamped():
    prof = profile_with((CurrentTherapy(), "excellent"), (CurrentTherapy(20, 10, 10), "excellent"))
    prof = prof.with_history(prof.therapy_history, analyze_patient_response(prof))
    assert generate_predictive_analysis(500, CurrentTherapy(), prof).recommended_dose == 50
    assert generate_predictive_analysis(0, CurrentTherapy(), prof).recommended_dose == 15


def test_notifications_respect_learning_mode():
    prof = profile_with(*[(CurrentTherapy(), "excellent")] * 6)
    prof = prof.with_history(prof.therapy_history, analyze_patient_response(prof))
    pred = generate_predictive_analysis(50, CurrentTherapy(), prof)
    notes = smart_notifications(pred, prof, learning_mode=True)
    assert "🧠 Modello maturo - Precisione predittiva ottimizzata" in notes
    assert smart_notifications(pred, prof, learning_mode=False) == []


def test_optimal_distribution_rounds_halves_up():
    history = [TherapyHistoryEntry("2025-01-01", CurrentTherapy(20, 15, 5), effectiveness="good")]
    # 50 / 37.5 / 12.5
    assert calculate_optimal_distribution(history) == (50, 38, 13)


def test_stability_line_rounds_halves_up():
    prof = profile_with((CurrentTherapy(18.75, 6.25, 6.25), "fair"), (CurrentTherapy(20, 7.5, 5), "good"))
    prof = prof.with_history(prof.therapy_history, analyze_patient_response(prof))
    pred = generate_predictive_analysis(50, CurrentTherapy(), prof)
    assert "Score di stabilità: 63/100" in pred.reasoning


def test_report_acth_improvement_rounds_halves_up():
    pred = PredictiveAnalysis(recommended_dose=25, confidence=80,
                              expected_outcome=ExpectedOutcome(acth_improvement=72.5))
    section = prediction_section(pred, PatientProfile(id="x", first_name="Luca", last_name="Verdi"))
    assert "• Miglioramento ACTH atteso: 73%" in section.lines
