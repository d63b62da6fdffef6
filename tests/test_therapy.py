from src.addidose.models import CurrentTherapy
from src.addidose.therapy import (
    auto_correct_to_quarters,
    distribute_dose_in_quarters,
    quarters_label,
    round_half_up,
    validate_quarter_doses,
    validate_therapy_values,
)


def test_round_half_up_not_bankers():
    assert round_half_up(0.125, 0.25) == 0.25
    assert round_half_up(0.375, 0.25) == 0.5
    assert round_half_up(16.5, 1) == 17


def test_distribute_assigns_residual_to_largest():
    # 15.75 + 9.5 + 6.25 = 31.5, corrected on the morning dose
    assert distribute_dose_in_quarters(31.25, [0.5, 0.3, 0.2]) == [15.5, 9.5, 6.25]


def test_quarters_label():
    assert quarters_label(6.25) == "1/4 compressa"
    assert quarters_label(12.5) == "1/2 compressa"
    assert quarters_label(18.75) == "3/4 compressa"
    assert quarters_label(25) == "1 compressa"
    assert quarters_label(31.25) == "1 cpr + 1/4"
    assert quarters_label(10) == "1.60 quarti"
    assert quarters_label(0) == "-"


def test_default_therapy_is_valid():
    assert validate_therapy_values(CurrentTherapy()) == []
    assert validate_quarter_doses(CurrentTherapy()) == []


def test_morning_share_below_half():
    errors = validate_therapy_values(CurrentTherapy(10, 10, 10, 0.1))
    assert "La dose mattutina dovrebbe essere almeno il 50% del totale" in errors


def test_non_quarter_dose_gets_suggestion():
    errors = validate_therapy_values(CurrentTherapy(18.8, 6.25, 6.25, 0.1))
    assert "Dose mattutina 18.8mg non è un quarto valido. Suggerito: 18.75mg" in errors


def test_florinef_step_and_range():
    assert "Usare incrementi di 0.025mg per il Florinef" in validate_therapy_values(CurrentTherapy(florinef=0.11))
    errors = validate_therapy_values(CurrentTherapy(florinef=0.5))
    assert any(e.startswith("Dose Florinef (0.5mg) fuori range") for e in errors)


def test_total_out_of_editor_range():
    errors = validate_therapy_values(CurrentTherapy(5, 2.5, 0, 0.1))
    assert errors[0].startswith("Dose totale cortisone (7.5mg) fuori range")


def test_quarter_validation_total_bounds():
    assert "Dose totale troppo bassa (<15mg/die). Rischio crisi surrenalica." in \
        validate_quarter_doses(CurrentTherapy(5, 5, 2.5, 0.1))
    assert "Dose totale troppo alta (>50mg/die). Rischio effetti Cushingoidi." in \
        validate_quarter_doses(CurrentTherapy(30, 15, 10, 0.1))


def test_auto_correct_to_quarters():
    fixed = auto_correct_to_quarters(CurrentTherapy(18.8, 6.3, 6.1, 0.1))
    assert (fixed.morning, fixed.midday, fixed.evening, fixed.florinef) == (18.75, 6.25, 6.0, 0.1)
