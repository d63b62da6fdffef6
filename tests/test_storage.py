import pytest

from src.addidose.models import CurrentTherapy, PatientDemographics, PatientProfile
from src.addidose.prediction import add_therapy_entry
from src.addidose.storage import ProfileStore, ProfileStoreError


def make_profile(pid="p1", first="Giulia", last="Neri"):
    return PatientProfile(id=pid, first_name=first, last_name=last,
                          demographics=PatientDemographics(age=52, weight=60, height=165, sex="F",
                                                           comorbidities=["Celiachia"]))


def test_missing_file_is_empty_store(tmp_path):
    store = ProfileStore(tmp_path / "profiles.json")
    assert len(store) == 0
    assert store.all() == []


def test_round_trip(tmp_path):
    path = tmp_path / "profiles.json"
    store = ProfileStore(path)
    profile = add_therapy_entry(make_profile(), CurrentTherapy(), "good")
    store.upsert(profile)

    reloaded = ProfileStore(path).get("p1")
    assert reloaded.full_name == "Giulia Neri"
    assert reloaded.demographics.comorbidities == ["Celiachia"]
    assert reloaded.therapy_history[0].therapy == CurrentTherapy()
    assert reloaded.therapy_history[0].effectiveness == "good"
    assert reloaded.response_patterns.optimal_distribution == (40, 30, 30)


def test_search_and_delete(tmp_path):
    store = ProfileStore(tmp_path / "profiles.json")
    store.upsert(make_profile("p1", "Giulia", "Neri"))
    store.upsert(make_profile("p2", "Paolo", "Bruno"))
    assert [p.id for p in store.search("neri")] == ["p1"]
    assert [p.id for p in store.search("addison")] == ["p2", "p1"]
    assert store.delete("p1") is True
    assert store.delete("p1") is False
    assert len(ProfileStore(tmp_path / "profiles.json")) == 1


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ProfileStoreError):
        ProfileStore(path)


@pytest.mark.parametrize("content", ['{"p1": {"id": "p1"}}', "[1, 2]", '["x"]'])
def test_wrong_json_shape_raises(tmp_path, content):
    path = tmp_path / "profiles.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ProfileStoreError):
        ProfileStore(path)


def test_save_replaces_file_without_leftovers(tmp_path):
    path = tmp_path / "profiles.json"
    store = ProfileStore(path)
    store.upsert(make_profile("p1"))
    store.upsert(make_profile("p2", "Paolo", "Bruno"))
    assert not (tmp_path / "profiles.json.tmp").exists()
    assert len(ProfileStore(path)) == 2
