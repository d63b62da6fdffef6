import pytest

from src.addidose.formulations import (
    convert_dose_between_formulations,
    efmody_split,
    generate_switch_protocol,
    get_formulation,
)


def test_equivalence_from_cortisone_acetate():
    assert convert_dose_between_formulations(25, "cortisone_acetate", "hydrocortisone") == 20
    assert convert_dose_between_formulations(25, "cortisone_acetate", "plenadren") == 16
    assert convert_dose_between_formulations(25, "cortisone_acetate", "efmody") == 18


def test_er_targets_rounded_to_half_mg():
    assert convert_dose_between_formulations(31.25, "cortisone_acetate", "plenadren") == 20.0
    assert convert_dose_between_formulations(31.25, "cortisone_acetate", "efmody") == 22.5


def test_efmody_split():
    assert efmody_split(18) == {"evening": 12.0, "morning": 6.0}


def test_unknown_formulation():
    with pytest.raises(ValueError):
        get_formulation("prednisone")


def test_switch_to_extended_release():
    p = generate_switch_protocol("cortisone_acetate", "plenadren", 25)
    assert p.from_formulation == "Cortone Acetato"
    assert p.target_dose == 16
    assert p.duration_days == 7
    assert [s.day for s in p.steps] == [1, 2, 3, 7]
    assert p.steps[0].old_formulation_dose == 25 and p.steps[0].new_formulation_dose == 0
    assert "⚠️ NON dividere o frantumare compresse ER-HC" in p.warnings


def test_switch_between_immediate_release():
    p = generate_switch_protocol("cortisone_acetate", "hydrocortisone", 25)
    assert len(p.steps) == 1
    assert p.steps[0].new_formulation_dose == 20
    assert len(p.monitoring) == 2
