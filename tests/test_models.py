from src.addidose.models import (
    CurrentTherapy,
    PatientRecord,
    ResponsePattern,
    safe_num,
    truthy_flag,
)


def test_safe_num():
    assert safe_num("138,5") == 138.5
    assert safe_num("") is None
    assert safe_num("n/d") is None
    assert safe_num(True) is None
    assert safe_num(4) == 4.0


def test_truthy_flag():
    assert truthy_flag("sì") and truthy_flag("on") and truthy_flag(1)
    assert not truthy_flag("no") and not truthy_flag(None) and not truthy_flag(0)


def test_record_from_loose_input():
    rec = PatientRecord.from_dict({"date": "2025-01-01", "na": "134", "vertigo": "1", "fatigue": "4",
                                   "other_medications": "  ", "unknown": 3})
    assert rec.na == 134.0
    assert rec.vertigo is True
    assert rec.fatigue == 4
    assert rec.k is None


def test_average_qol_ignores_missing_scores():
    rec = PatientRecord(date="2025-01-01", fatigue=4, sleep_quality=2)
    assert rec.qol_scores() == [4, 2]
    assert rec.average_qol() == 3.0
    assert PatientRecord(date="2025-01-01").average_qol() is None


def test_therapy_total_and_administrations():
    assert CurrentTherapy().total == 31.25
    assert CurrentTherapy().administrations == 3
    assert CurrentTherapy(20, 5, 0, 0.1).administrations == 2
    assert CurrentTherapy.from_dict({"morning": "20", "florinef": None}) == CurrentTherapy(20, 6.25, 6.25, 0.1)


def test_response_pattern_keeps_zero_values():
    p = ResponsePattern.from_dict({"cortisone_to_acth": 0, "dose_response_slope": 0.0})
    assert p.cortisone_to_acth == 0.0
    assert p.dose_response_slope == 0.0
    assert p.stability_score == 50.0
