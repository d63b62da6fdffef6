"""
Text, OCR and CSV import of clinical data.

OCR itself happens outside this package; these helpers only see the raw text
it produces and pull lab values out of it with regular expressions.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import (
    LAB_FIELDS,
    QOL_FIELDS,
    CurrentTherapy,
    PatientRecord,
    TherapyHistoryEntry,
    safe_num,
)

logger = logging.getLogger(__name__)

# ---------- lab report lines ----------
LAB_PATTERNS = {
    "acth": re.compile(r"\bacth[:\s]+(\d{1,4}(?:\.\d{1,2})?)", re.I),
    "cortisol": re.compile(r"\bcortisolo?[:\s]+(\d{1,3}(?:\.\d{1,2})?)", re.I),
    "na": re.compile(r"\b(?:na|sodio)[:\s]+(\d{2,3})", re.I),
    "k": re.compile(r"\b(?:k|potassio)[:\s]+(\d{1,2}(?:\.\d{1,2})?)", re.I),
    "renin": re.compile(r"\brenina?[:\s]+(\d{1,3}(?:\.\d{1,2})?)", re.I),
}

# ---------- OCR output (looser, tolerant of noise between label and value) ----------
OCR_PATTERNS = {
    "na": re.compile(r"\bNa[^0-9]*(\d{2,3})", re.I),
    "k": re.compile(r"\bK[^0-9]*(\d\.\d)", re.I),
    "acth": re.compile(r"ACTH[^0-9]*(\d{2,4})", re.I),
    "cortisol": re.compile(r"cortisolo[^0-9]*(\d{1,2}\.?\d?)", re.I),
}

# ---------- clinical documents ----------
AGE_RE = re.compile(r"(?:età|anni|age)[:\s]+(\d{1,3})", re.I)
WEIGHT_RE = re.compile(r"(?:peso|weight)[:\s]+(\d{1,3}(?:\.\d{1,2})?)\s*kg", re.I)
HEIGHT_RE = re.compile(r"(?:altezza|height)[:\s]+(\d{2,3})\s*cm", re.I)
NAME_RE = re.compile(r"(?:nome|patient)[:\s]+([A-Za-zÀ-ÿ ]+)", re.I)
CORTISONE_RE = re.compile(r"(?:idro)?cortisone[:\s]+(\d{1,2}(?:\.\d{1,2})?)\s*mg", re.I)
FLORINEF_RE = re.compile(r"(?:florinef|fludrocortisone)[:\s]+(\d(?:\.\d{1,3})?)\s*mg", re.I)

DIAGNOSIS_KEYWORDS = ("addison", "surrenale", "insufficienza")
COMORBIDITY_KEYWORDS = [
    (("diabete",), "Diabete"),
    (("tiroide", "hashimoto"), "Tiroidite"),
    (("celiachia",), "Celiachia"),
    (("vitiligine",), "Vitiligine"),
]

# split used for a single imported daily cortisone dose
IMPORT_SPLIT = (0.5, 0.3, 0.2)


def _today() -> str:
    return date.today().isoformat()


def _first_match(pattern: re.Pattern, text: str) -> Optional[float]:
    m = pattern.search(text)
    return safe_num(m.group(1)) if m else None


def parse_lab_results(text: str, on: Optional[str] = None) -> List[PatientRecord]:
    """One record per line that carries at least one of ACTH, cortisol, Na, K, renin."""
    records: List[PatientRecord] = []
    for lineno, line in enumerate((text or "").splitlines(), 1):
        values = {name: _first_match(rx, line) for name, rx in LAB_PATTERNS.items()}
        values = {k: v for k, v in values.items() if v is not None}
        if not values:
            if line.strip():
                logger.debug("No lab values on line %d: %r", lineno, line)
            continue
        records.append(PatientRecord(date=on or _today(), **values))
    logger.info("Parsed %d lab record(s) from text", len(records))
    return records


def parse_ocr_text(text: str, on: Optional[str] = None) -> PatientRecord:
    """Pre-fill record from OCR output; fields not recognised stay None."""
    values = {name: _first_match(rx, text or "") for name, rx in OCR_PATTERNS.items()}
    found = [k for k, v in values.items() if v is not None]
    logger.debug("OCR extraction found %s", found or "nothing")
    return PatientRecord(date=on or _today(), **values)


@dataclass
class ExtractedDocument:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    demographics: Dict[str, Any] = field(default_factory=dict)
    therapy_history: List[TherapyHistoryEntry] = field(default_factory=list)

    @property
    def field_count(self) -> int:
        return sum(1 for v in (self.first_name, self.last_name, self.demographics, self.therapy_history) if v)

    @property
    def confidence(self) -> int:
        return min(95, self.field_count * 15 + 20)


def parse_text_document(text: str, on: Optional[str] = None) -> ExtractedDocument:
    """Extract name, demographics, initial therapy and comorbidities from a clinical document."""
    text = text or ""
    lower = text.lower()
    doc = ExtractedDocument()

    age = _first_match(AGE_RE, text)
    if age is not None:
        doc.demographics["age"] = int(age)
    weight = _first_match(WEIGHT_RE, text)
    if weight is not None:
        doc.demographics["weight"] = weight
    height = _first_match(HEIGHT_RE, text)
    if height is not None:
        doc.demographics["height"] = int(height)

    m = NAME_RE.search(text)
    if m:
        parts = m.group(1).split()
        # a single token is not enough to tell first and last name apart
        if len(parts) >= 2:
            doc.first_name = parts[0]
            doc.last_name = " ".join(parts[1:])

    if any(k in lower for k in DIAGNOSIS_KEYWORDS):
        doc.demographics["diagnosis"] = "Malattia di Addison"

    dose = _first_match(CORTISONE_RE, text)
    if dose is not None:
        florinef = _first_match(FLORINEF_RE, text)
        morning, midday, evening = (dose * share for share in IMPORT_SPLIT)
        doc.therapy_history.append(TherapyHistoryEntry(
            date=on or _today(),
            therapy=CurrentTherapy(
                morning=morning,
                midday=midday,
                evening=evening,
                florinef=florinef if florinef is not None else 0.1,
            ),
            duration=30,
            reason="Importato da documento clinico",
            prescriber="Medico curante",
        ))

    comorbidities = [label for keys, label in COMORBIDITY_KEYWORDS if any(k in lower for k in keys)]
    if comorbidities:
        doc.demographics["comorbidities"] = comorbidities

    logger.info("Document parsed: %d field group(s), confidence %d%%", doc.field_count, doc.confidence)
    return doc


# ---------- CSV / tabular ----------
RECORD_COLUMNS = ["date", *LAB_FIELDS, "hypoglycemia", "crave_salt", "vertigo",
                  "glucocorticoid_dose", "florinef_dose", "other_medications", *QOL_FIELDS]


def frame_to_records(df: pd.DataFrame) -> List[PatientRecord]:
    df = df.rename(columns=lambda c: str(c).strip().lower())
    if "date" not in df.columns:
        raise ValueError("CSV import requires a 'date' column")
    df = df.astype(object).where(pd.notna(df), None)
    records = []
    for row in df.to_dict(orient="records"):
        if not row.get("date"):
            logger.debug("Skipping CSV row without date: %r", row)
            continue
        records.append(PatientRecord.from_dict(row))
    return records


def load_records_csv(path_or_buffer) -> List[PatientRecord]:
    """Bulk import; unknown columns are ignored, missing ones are treated as not measured."""
    df = pd.read_csv(path_or_buffer, dtype=str, keep_default_na=True)
    records = frame_to_records(df)
    logger.info("Loaded %d record(s) from CSV", len(records))
    return records


def records_to_frame(records: List[PatientRecord]) -> pd.DataFrame:
    """Tabular view of records, newest last, one column per field."""
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    return pd.DataFrame([r.to_dict() for r in records], columns=RECORD_COLUMNS)
