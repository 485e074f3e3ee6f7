FEVER_MESSAGE = "I have fever and headache for two days"


def chat(client, message, session_id=None, **extra):
    payload = {"message": message, **extra}
    if session_id:
        payload["session_id"] = session_id
    response = client.post("/chat", json=payload)
    assert response.status_code == 200
    return response.json()


def book(client):
    first = chat(client, "hello")
    session_id = first["session_id"]
    for message in (FEVER_MESSAGE, "Dhanmondi"):
        chat(client, message, session_id)
    return session_id, chat(client, "yes", session_id)


def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert "Doctor Koi" in client.get("/").json()["message"]


def test_empty_message_is_rejected(client):
    response = client.post("/chat", json={"message": "   "})
    assert response.status_code == 400


def test_conversation_persists_across_requests(client):
    first = chat(client, "hello")
    assert first["current_step"] == "greeting"

    second = chat(client, FEVER_MESSAGE, first["session_id"])
    assert second["session_id"] == first["session_id"]
    assert second["current_step"] == "location"
    assert second["detected_disease"] == "Malaria"
    assert second["requires_location"] is True


def test_booking_round_trip_and_payment(client, services):
    session_id, booked = book(client)
    assert booked["current_step"] == "booking"
    assert booked["doctor_info"]["name"] == "Rahim Uddin"
    appointment_id = booked["appointment_id"]

    appointment = client.get(f"/appointments/{appointment_id}").json()
    assert appointment["status"] == "Pending"
    assert appointment["is_paid"] is False
    assert appointment["owner_id"] == session_id

    response = client.post(f"/appointments/{appointment_id}/payment", json={"payment_reference": "pi_ok"})
    assert response.status_code == 503

    services.payment_verifier = lambda ref: ref == "pi_ok"
    rejected = client.post(f"/appointments/{appointment_id}/payment", json={"payment_reference": "pi_bad"})
    assert rejected.json()["is_paid"] is False

    paid = client.post(f"/appointments/{appointment_id}/payment", json={"payment_reference": "pi_ok"}).json()
    assert paid["is_paid"] is True
    assert paid["status"] == "Confirmed"
    assert paid["appointment_date"].endswith("16:00:00+00:00")


def test_unknown_appointment(client, services):
    assert client.get("/appointments/999").status_code == 404
    services.payment_verifier = lambda ref: True
    response = client.post("/appointments/999/payment", json={"payment_reference": "pi_ok"})
    assert response.status_code == 404


def test_history_is_scoped_to_the_session(client):
    first = chat(client, "hello", user_id="user-42")
    chat(client, FEVER_MESSAGE, first["session_id"], user_id="user-42")
    other = chat(client, "hello")

    history = client.get("/chat/history", params={"session_id": first["session_id"]}).json()
    assert [m["is_from_user"] for m in history] == [True, False, True, False]
    assert history[0]["message"] == "hello"

    other_history = client.get("/chat/history", params={"session_id": other["session_id"]}).json()
    assert len(other_history) == 2

    assert client.get("/chat/history", params={"session_id": "unknown"}).status_code == 404
    assert client.get("/chat/history", params={"owner_id": "user-42"}).status_code == 422
