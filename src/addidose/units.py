"""
Lab unit conversion.

Values are stored in STANDARD_UNITS (mEq/L, pg/mL, μg/dL, ng/mL/h, mmHg) and
converted at the edges: form input -> storage, storage -> display.
Unmapped unit pairs pass through unchanged.
"""
from typing import Dict, Optional

from .config import STANDARD_UNITS

# parameter -> {(from_unit, to_unit): factor}; reverse pairs are derived below
_FACTORS = {
    "acth": {("pg/mL", "pmol/L"): 0.22},
    "cortisol": {("μg/dL", "nmol/L"): 27.59},
    "renin": {
        ("ng/mL/h", "mUI/L"): 2.6,
        ("μg/L/h", "mUI/L"): 2.6,
        ("ng/mL/h", "μg/L/h"): 1.0,
    },
    "bp": {("mmHg", "kPa"): 0.133},
    # mEq/L and mmol/L coincide for monovalent ions
    "na": {("mEq/L", "mmol/L"): 1.0},
    "k": {("mEq/L", "mmol/L"): 1.0},
}

UNIT_CHOICES = {
    "na": ["mEq/L", "mmol/L"],
    "k": ["mEq/L", "mmol/L"],
    "acth": ["pg/mL", "pmol/L"],
    "cortisol": ["μg/dL", "nmol/L"],
    "renin": ["ng/mL/h", "μg/L/h", "mUI/L"],
    "bp": ["mmHg", "kPa"],
}


def convert(value: Optional[float], parameter: str, from_unit: str, to_unit: str) -> Optional[float]:
    """Convert a lab value between unit systems; unknown pairs return value unchanged."""
    if value is None or from_unit == to_unit:
        return value
    table = _FACTORS.get(parameter, {})
    if (from_unit, to_unit) in table:
        return value * table[(from_unit, to_unit)]
    if (to_unit, from_unit) in table:
        return value / table[(to_unit, from_unit)]
    return value


def to_standard(value: Optional[float], parameter: str, input_unit: str) -> Optional[float]:
    return convert(value, parameter, input_unit, STANDARD_UNITS[parameter])


# record field -> unit family used to convert it
FIELD_PARAMETERS = {
    "na": "na",
    "k": "k",
    "acth": "acth",
    "cortisol": "cortisol",
    "cortisol_urinary_24h": "cortisol",
    "cortisol_post_90min": "cortisol",
    "renin": "renin",
    "bp_sup_sys": "bp",
    "bp_sup_dia": "bp",
    "bp_orth_sys": "bp",
    "bp_orth_dia": "bp",
}


def fields_to_standard(values: Dict[str, Optional[float]], units: Dict[str, str]) -> Dict[str, Optional[float]]:
    """Convert form values entered in `units` to storage units; fields with no unit family are kept as given."""
    out = {}
    for name, value in values.items():
        parameter = FIELD_PARAMETERS.get(name)
        if parameter is None:
            out[name] = value
        else:
            out[name] = to_standard(value, parameter, units.get(parameter, STANDARD_UNITS[parameter]))
    return out


def display_value(value: Optional[float], parameter: str, unit: str) -> str:
    """Format a stored value in the requested display unit ("-" when missing)."""
    if value is None:
        return "-"
    converted = convert(value, parameter, STANDARD_UNITS[parameter], unit)
    decimals = 1 if parameter in ("cortisol", "acth") else 0
    return f"{converted:.{decimals}f}"


def reference_ranges(units: Dict[str, str]) -> Dict[str, str]:
    """Reference intervals expressed in the currently selected units."""
    units = {**STANDARD_UNITS, **units}
    si_cortisol = units["cortisol"] != "μg/dL"
    if units["renin"] == "mUI/L":
        renin = "0.8-10.4"
    else:
        renin = "0.3-4.0"
    return {
        "na": "136-145",
        "k": "3.5-5.0",
        "acth": "2.2-11.0" if units["acth"] == "pmol/L" else "10-50",
        "cortisol": "138-690" if si_cortisol else "5-25",
        "cortisol_urinary_24h": "28-276 nmol/24h" if si_cortisol else "10-100 μg/24h",
        "cortisol_post_90min": "<552 (sovradosaggio se >690)" if si_cortisol else "<20 (sovradosaggio se >25)",
        "renin": renin,
        "bp": "12-19" if units["bp"] == "kPa" else "90-140",
    }
