from datetime import datetime, timedelta, timezone

from doctorkoi.database import DiseaseCatalog, best_effort
from doctorkoi.models import ChatMessage


def test_add_disease_is_an_upsert_by_name(db):
    catalog = DiseaseCatalog(db)
    catalog.add_disease("Malaria", specialist="Internal Medicine", symptoms=["Chills"])
    catalog.add_disease("MALARIA", description="Mosquito-borne.", symptoms=["chills", "sweating"])

    [malaria] = catalog.list_diseases()
    assert malaria.name == "Malaria"
    assert malaria.description == "Mosquito-borne."
    assert malaria.specialist == "Internal Medicine"
    assert malaria.symptoms == ["chills", "sweating"]
    assert catalog.count() == 1


def test_doctor_directory_round_trip(doctors):
    assert doctors.count() == 4
    rahim = next(d for d in doctors.list_doctors() if d.name == "Rahim Uddin")
    assert doctors.get_doctor(rahim.id) == rahim
    doctors.remove_doctor(rahim.id)
    assert doctors.get_doctor(rahim.id) is None


def test_transcript_history_is_oldest_first_and_limit_keeps_latest(transcript):
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for i in range(4):
        transcript.append(ChatMessage(owner_id="u1", message=f"m{i}", is_from_user=i % 2 == 0,
                                      timestamp=start + timedelta(seconds=i)))
    transcript.append(ChatMessage(owner_id="u2", message="other"))

    assert [m.message for m in transcript.history("u1")] == ["m0", "m1", "m2", "m3"]
    assert [m.message for m in transcript.history("u1", limit=2)] == ["m2", "m3"]
    assert transcript.history("u1")[1].is_from_user is False
    assert transcript.history("nobody") == []


def test_best_effort_swallows_failures():
    def fail():
        raise RuntimeError("disk full")

    assert best_effort("write", fail) is None
    assert best_effort("add", lambda a, b: a + b, 1, 2) == 3
