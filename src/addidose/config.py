"""
AddiDose configuration.

Clinical constants used by the dosing rules live here as plain module constants.
Runtime settings are read from the environment (a local .env file is honoured).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# RUNTIME SETTINGS
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

PROFILE_STORE_PATH = Path(os.getenv("ADDIDOSE_PROFILE_PATH", "profiles.json"))

LEARNING_MODE = os.getenv("ADDIDOSE_LEARNING_MODE", "true").lower() in ("true", "1", "yes")

# =============================================================================
# GLUCOCORTICOID LIMITS (cortisone acetate, mg/day)
# =============================================================================

MIN_GC_DOSE = 15.0
MAX_GC_DOSE = 50.0
GC_DOSE_STEP = 6.25      # one quarter of a 25mg tablet
TABLET_MG = 25.0
QUARTER_MG = 0.25        # rounding grain for auto-generated doses

# therapy editor bounds
EDITOR_MIN_GC_DOSE = 10.0
EDITOR_MAX_GC_DOSE = 60.0
MIN_MORNING_SHARE = 50.0

# =============================================================================
# MINERALOCORTICOID LIMITS (fludrocortisone, mg/day)
# =============================================================================

MIN_FLORINEF = 0.05
MAX_FLORINEF = 0.2
FLORINEF_STEP = 0.025
EDITOR_MIN_FLORINEF = 0.025
EDITOR_MAX_FLORINEF = 0.3

# =============================================================================
# LAB THRESHOLDS (storage units)
# =============================================================================

NA_LOW = 135.0
NA_HIGH = 145.0
K_LOW = 3.5
K_HIGH = 5.0
ACTH_ELEVATED = 145.0
ACTH_NORMAL_RANGE = (10.0, 46.0)
CORTISOL_LOW = 6.0
RENIN_HIGH = 4.0
SYS_LOW = 100.0
DIA_LOW = 60.0
SYS_HIGH = 140.0
DIA_HIGH = 90.0
ORTHOSTATIC_DROP = 20.0
GLUCOSE_LOW = 70.0
FATIGUE_EXCESSIVE = 4

# =============================================================================
# PREDICTION
# =============================================================================

TARGET_ACTH = 50.0
BLEND_CONFIDENCE = 70.0

# units used for stored PatientRecord values
STANDARD_UNITS = {
    "na": "mEq/L",
    "k": "mEq/L",
    "acth": "pg/mL",
    "cortisol": "μg/dL",
    "renin": "ng/mL/h",
    "bp": "mmHg",
}
