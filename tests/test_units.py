import pytest

from src.addidose.units import convert, display_value, fields_to_standard, reference_ranges, to_standard


def test_acth_pg_to_pmol():
    assert convert(10.0, "acth", "pg/mL", "pmol/L") == pytest.approx(2.2)
    assert convert(2.2, "acth", "pmol/L", "pg/mL") == pytest.approx(10.0)


def test_cortisol_and_renin_factors():
    assert convert(10.0, "cortisol", "μg/dL", "nmol/L") == pytest.approx(275.9)
    assert convert(2.0, "renin", "ng/mL/h", "mUI/L") == pytest.approx(5.2)
    assert convert(2.0, "renin", "μg/L/h", "mUI/L") == pytest.approx(5.2)
    assert convert(2.0, "renin", "ng/mL/h", "μg/L/h") == pytest.approx(2.0)


def test_electrolytes_identity():
    assert convert(138.0, "na", "mEq/L", "mmol/L") == 138.0
    assert to_standard(4.2, "k", "mmol/L") == 4.2


def test_none_passes_through():
    assert convert(None, "acth", "pg/mL", "pmol/L") is None


def test_unknown_pair_returns_input_unchanged():
    assert convert(42.0, "acth", "pg/mL", "nmol/L") == 42.0
    assert convert(42.0, "unknown", "a", "b") == 42.0


@pytest.mark.parametrize("value,parameter,a,b", [
    (37.0, "acth", "pg/mL", "pmol/L"),
    (12.5, "cortisol", "μg/dL", "nmol/L"),
    (1.7, "renin", "ng/mL/h", "mUI/L"),
    (118.0, "bp", "mmHg", "kPa"),
])
def test_round_trip(value, parameter, a, b):
    assert convert(convert(value, parameter, a, b), parameter, b, a) == pytest.approx(value)


def test_display_value():
    assert display_value(None, "acth", "pg/mL") == "-"
    assert display_value(10.0, "acth", "pmol/L") == "2.2"
    assert display_value(120.0, "bp", "mmHg") == "120"


def test_reference_ranges_follow_units():
    assert reference_ranges({})["cortisol"] == "5-25"
    si = reference_ranges({"cortisol": "nmol/L", "acth": "pmol/L", "renin": "mUI/L"})
    assert si["cortisol"] == "138-690"
    assert si["acth"] == "2.2-11.0"
    assert si["renin"] == "0.8-10.4"


def test_form_fields_converted_to_storage_units():
    values = fields_to_standard(
        {"cortisol": 275.9, "cortisol_urinary_24h": 551.8, "cortisol_post_90min": None,
         "acth": 11.0, "bp_sup_sys": 16.0, "glucose": 90.0},
        {"cortisol": "nmol/L", "acth": "pmol/L", "bp": "kPa"},
    )
    assert values["cortisol"] == pytest.approx(10.0)
    assert values["cortisol_urinary_24h"] == pytest.approx(20.0)
    assert values["cortisol_post_90min"] is None
    assert values["acth"] == pytest.approx(50.0)
    assert values["bp_sup_sys"] == pytest.approx(120.3, abs=0.1)
    assert values["glucose"] == 90.0
