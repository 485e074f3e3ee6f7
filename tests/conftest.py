import pytest
from fastapi.testclient import TestClient

from doctorkoi.app import Services, create_app
from doctorkoi.conversation import ConversationEngine
from doctorkoi.database import AppointmentStore, ChatTranscript, Database, DiseaseCatalog, DoctorDirectory
from doctorkoi.dataset_cache import SymptomDatasetCache
from doctorkoi.session_manager import SessionStore

SYMPTOM_COMBINATIONS = {
    "Malaria": [
        ["chills", "vomiting", "high fever", "sweating", "headache", "nausea"],
    ],
    "Hypertension": [
        ["headache", "chest pain", "dizziness", "loss of balance"],
    ],
}


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "doctorkoi-test.sqlite3")


@pytest.fixture
def catalog(db):
    catalog = DiseaseCatalog(db)
    catalog.add_disease(
        "Malaria",
        description="A mosquito-borne infection causing fever and chills.",
        specialist="Internal Medicine",
        symptoms=["chills", "high fever", "sweating"],
    )
    catalog.add_disease(
        "Hypertension",
        description="Persistently raised blood pressure.",
        specialist="Cardiologist",
        symptoms=["chest pain", "dizziness"],
    )
    return catalog


@pytest.fixture
def doctors(db):
    directory = DoctorDirectory(db)
    directory.add_doctor("Rahim Uddin", specialty="Internal Medicine", location="Dhanmondi",
                         chamber="Popular Diagnostic Centre", experience=12, consultation_fee=800)
    directory.add_doctor("Karim Ahmed", specialty="Internal Medicine", location="Gulshan",
                         chamber="United Hospital", experience=20, consultation_fee=0)
    directory.add_doctor("Nasrin Akter", specialty="Cardiologist", location="Dhanmondi",
                         chamber="Ibn Sina Hospital", experience=15, consultation_fee=1000)
    directory.add_doctor("Salma Begum", specialty="General Medicine", location="Uttara")
    return directory


@pytest.fixture
def appointments(db):
    return AppointmentStore(db)


@pytest.fixture
def transcript(db):
    return ChatTranscript(db)


@pytest.fixture
def dataset():
    return SymptomDatasetCache.from_mapping(SYMPTOM_COMBINATIONS)


@pytest.fixture
def make_engine(catalog, doctors, appointments, dataset, transcript):
    def _make(llm=None):
        return ConversationEngine(
            catalog=catalog,
            doctors=doctors,
            appointments=appointments,
            dataset=dataset,
            llm=llm,
            transcript=transcript,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def services(engine, transcript, appointments):
    return Services(
        engine=engine,
        sessions=SessionStore(),
        transcript=transcript,
        appointments=appointments,
    )


@pytest.fixture
def client(services):
    with TestClient(create_app(services=services)) as test_client:
        yield test_client
