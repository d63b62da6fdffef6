import io

import pytest

from src.addidose.importers import (
    RECORD_COLUMNS,
    load_records_csv,
    parse_lab_results,
    parse_ocr_text,
    parse_text_document,
    records_to_frame,
)

DOCUMENT = """Nome: Mario Rossi
Età: 45
Peso: 72 kg
Altezza: 178 cm
Diagnosi: morbo di Addison
Terapia: cortisone 25 mg, florinef 0.1 mg
Comorbidità: tiroidite di Hashimoto
"""


def test_parse_lab_results_one_record_per_line():
    text = "ACTH: 45 Cortisolo: 12.5\nNa: 138 K: 4.2\nnota senza valori\n"
    recs = parse_lab_results(text, on="2025-02-01")
    assert len(recs) == 2
    assert (recs[0].acth, recs[0].cortisol, recs[0].na) == (45.0, 12.5, None)
    assert (recs[1].na, recs[1].k) == (138.0, 4.2)
    assert recs[1].date == "2025-02-01"


def test_parse_lab_results_italian_labels():
    recs = parse_lab_results("Sodio 134 Potassio 5.3 Renina: 6.1")
    assert (recs[0].na, recs[0].k, recs[0].renin) == (134.0, 5.3, 6.1)


def test_parse_lab_results_empty():
    assert parse_lab_results("") == []


def test_parse_ocr_text():
    rec = parse_ocr_text("Na 131 mmol/L\nK 5.6\nACTH 250 pg/mL\ncortisolo 4.2", on="2025-02-01")
    assert (rec.na, rec.k, rec.acth, rec.cortisol) == (131.0, 5.6, 250.0, 4.2)
    assert rec.renin is None


def test_parse_ocr_text_without_matches():
    rec = parse_ocr_text("illeggibile")
    assert rec.na is None and rec.acth is None


def test_parse_text_document():
    doc = parse_text_document(DOCUMENT, on="2025-02-01")
    assert (doc.first_name, doc.last_name) == ("Mario", "Rossi")
    assert doc.demographics["age"] == 45
    assert doc.demographics["weight"] == 72.0
    assert doc.demographics["height"] == 178
    assert doc.demographics["diagnosis"] == "Malattia di Addison"
    assert doc.demographics["comorbidities"] == ["Tiroidite"]
    therapy = doc.therapy_history[0].therapy
    assert (therapy.morning, therapy.midday, therapy.evening, therapy.florinef) == (12.5, 7.5, 5.0, 0.1)
    assert doc.confidence == 80


def test_parse_text_document_empty_has_base_confidence():
    doc = parse_text_document("")
    assert doc.field_count == 0
    assert doc.confidence == 20


def test_single_name_token_is_ignored():
    doc = parse_text_document("Nome: Mario\n")
    assert doc.first_name is None


def test_load_records_csv_skips_rows_without_date():
    csv = io.StringIO("date,na,k,crave_salt,fatigue,note\n2025-01-10,134,4.1,1,4,x\n,140,4.0,0,,\n")
    recs = load_records_csv(csv)
    assert len(recs) == 1
    assert recs[0].na == 134.0
    assert recs[0].crave_salt is True
    assert recs[0].fatigue == 4
    assert recs[0].acth is None


def test_load_records_csv_requires_date_column():
    with pytest.raises(ValueError):
        load_records_csv(io.StringIO("na,k\n134,4.1\n"))


def test_records_to_frame():
    recs = parse_lab_results("Na: 138 K: 4.2\nACTH: 60", on="2025-02-01")
    df = records_to_frame(recs)
    assert list(df.columns) == RECORD_COLUMNS
    assert len(df) == 2
    assert df.loc[0, "na"] == 138.0
    assert records_to_frame([]).empty
