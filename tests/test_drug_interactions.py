from src.addidose.drug_interactions import analyze_drug_interactions, cumulative_adjustment


def test_inducer_and_inhibitor_combine_multiplicatively():
    res = analyze_drug_interactions("rifampicina e ritonavir")
    names = [d.drug_name for d in res.detected]
    assert names == ["Rifampicina", "Ritonavir"]
    # 1.5 * 0.7 = 1.05, not 50 - 30 = 20
    assert res.total_dose_adjustment == 5


def test_order_independent():
    assert cumulative_adjustment([50, -30]) == cumulative_adjustment([-30, 50])
    assert analyze_drug_interactions("ritonavir, rifampicina").total_dose_adjustment == 5


def test_empty_input():
    for text in (None, "", "   "):
        res = analyze_drug_interactions(text)
        assert res.detected == []
        assert res.total_dose_adjustment == 0
        assert res.alerts == []


def test_case_insensitive_brand_names():
    res = analyze_drug_interactions("TEGRETOL 200mg x2")
    assert [d.drug_name for d in res.detected] == ["Carbamazepina"]
    assert res.detected[0].detected_variants == ["tegretol"]
    assert res.total_dose_adjustment == 35


def test_non_dose_effects_do_not_change_total():
    res = analyze_drug_interactions("ramipril, furosemide, omeprazolo")
    assert len(res.detected) == 3
    assert res.total_dose_adjustment == 0
    assert res.alerts == []  # all moderate/minor


def test_alerts_only_for_critical_and_major():
    res = analyze_drug_interactions("ritonavir, warfarin")
    assert len(res.alerts) == 1
    assert res.alerts[0].startswith("🚨 RITONAVIR: Interazione CRITICA")
    assert "RIDUZIONE" in res.alerts[0]


def test_recommendations_and_monitoring_deduplicated():
    res = analyze_drug_interactions("fenitoina, carbamazepina")
    assert res.total_dose_adjustment == 82
    assert res.recommendations.count("Aumentare dose glucocorticoide del 25-50%") == 1
    assert res.requires_monitoring == ["ACTH mensile", "Sintomi ipocortisolismo", "Funzionalità epatica"]


def test_unknown_text_matches_nothing():
    assert analyze_drug_interactions("paracetamolo 1g al bisogno").detected == []
