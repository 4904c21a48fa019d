from casedash.data.enrichment import enrich_entities, enrich_services
from casedash.data.loader import frame_from_records

PERSON_KEYS = ("uid", "unique_id")


def test_person_enrichment(snapshot, now):
    out = enrich_entities(snapshot.persons, PERSON_KEYS, now=now).set_index("entity_id")
    assert out.loc["V1", "display_name"] == "Ruth Zulu"
    assert out.loc["V1", "age"] == 14
    assert bool(out.loc["V1", "age_known"])
    assert out.loc["V2", "display_name"] == "Daniel"
    assert out.loc["V2", "age"] == 0
    assert not bool(out.loc["V2", "age_known"])


def test_raw_columns_are_untouched(snapshot, now):
    out = enrich_entities(snapshot.persons, PERSON_KEYS, now=now)
    assert out["birthdate"].tolist() == ["15-06-2010", "bad"]
    assert "entity_id" not in snapshot.persons.columns


def test_unresolved_ids_show_as_missing(households, now):
    out = enrich_entities(frame_from_records(households), ("household_id", "hh_id"), now=now)
    assert out["display_id"].tolist() == ["H1", "H2", "H3", "H4", "N/A"]
    assert out.attrs["diagnostics"]["unresolved_ids"] == 1


def test_missing_names_show_as_missing(now):
    out = enrich_entities(frame_from_records([{"uid": "V9"}]), PERSON_KEYS, now=now)
    assert out["display_name"].tolist() == ["N/A"]


def test_service_enrichment(services):
    out = enrich_services(frame_from_records(services))
    assert out["owner_id"].tolist()[:4] == ["H1", "H1", "H2", "H4"]
    assert out["owner_id"].tolist()[4] is None
    assert out["service_date_parse_ok"].tolist() == [True, True, True, False, True]
    assert out.loc[2, "service_date"].strftime("%Y-%m-%d") == "2024-05-30"


def test_age_known_follows_birthdate_parsing(now):
    persons = [
        {"uid": "infant", "birthdate": "2024-03-01"},
        {"uid": "unknown", "birthdate": "bad"},
        {"uid": "blank"},
    ]
    out = enrich_entities(frame_from_records(persons), PERSON_KEYS, now=now).set_index("entity_id")
    assert out.loc["infant", "age"] == 0
    assert bool(out.loc["infant", "age_known"])
    assert not bool(out.loc["unknown", "age_known"])
    assert not bool(out.loc["blank", "age_known"])


def test_display_columns_never_hold_nan(households, now):
    out = enrich_entities(frame_from_records(households), ("household_id", "hh_id"), now=now)
    assert out["entity_id"].tolist()[-1] is None
    assert all(isinstance(v, str) for v in out["display_id"])
    assert all(isinstance(v, str) for v in out["display_name"])
