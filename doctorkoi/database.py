"""
database.py
SQLite persistence: disease catalog, doctor directory, chat transcript and appointments.
"""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .models import Appointment, AppointmentStatus, ChatMessage, Disease, Doctor

logger = logging.getLogger(__name__)


def utc_now():
    return datetime.now(timezone.utc)


def to_iso(value):
    return value.isoformat() if value is not None else None


def parse_iso(value):
    return datetime.fromisoformat(value) if value else None


def best_effort(description, fn, *args, **kwargs):
    """Run a non-critical write; log and swallow any failure."""
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        logger.warning("Could not %s (continuing anyway): %s", description, e)
        return None


class Database:
    def __init__(self, db_path):
        self._path = Path(db_path).expanduser().resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    @property
    def path(self):
        return str(self._path)

    def _connect(self):
        conn = sqlite3.connect(str(self._path), timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self):
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        with self._lock, self.connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS diseases (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                  description TEXT,
                  specialist TEXT
                );

                CREATE TABLE IF NOT EXISTS symptoms (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  name TEXT NOT NULL UNIQUE COLLATE NOCASE
                );

                CREATE TABLE IF NOT EXISTS disease_symptoms (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  disease_id INTEGER NOT NULL REFERENCES diseases(id) ON DELETE CASCADE,
                  symptom_id INTEGER NOT NULL REFERENCES symptoms(id) ON DELETE CASCADE,
                  is_present INTEGER NOT NULL DEFAULT 1,
                  UNIQUE (disease_id, symptom_id)
                );

                CREATE TABLE IF NOT EXISTS doctors (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  name TEXT NOT NULL,
                  education TEXT,
                  specialty TEXT,
                  experience REAL,
                  chamber TEXT,
                  location TEXT,
                  concentration TEXT,
                  consultation_fee REAL
                );

                CREATE TABLE IF NOT EXISTS chat_messages (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  owner_id TEXT NOT NULL,
                  message TEXT NOT NULL,
                  is_from_user INTEGER NOT NULL DEFAULT 1,
                  timestamp TEXT NOT NULL,
                  detected_disease TEXT,
                  recommended_doctor_id INTEGER
                );

                CREATE TABLE IF NOT EXISTS appointments (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  owner_id TEXT NOT NULL,
                  doctor_id INTEGER NOT NULL REFERENCES doctors(id),
                  appointment_date TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  status TEXT NOT NULL DEFAULT 'Pending',
                  amount REAL NOT NULL,
                  is_paid INTEGER NOT NULL DEFAULT 0,
                  payment_reference TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_chat_messages_owner
                  ON chat_messages(owner_id, timestamp);
                """
            )


class DiseaseCatalog:
    def __init__(self, db):
        self._db = db

    def add_disease(self, name, description=None, specialist=None, symptoms=None):
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO diseases (name, description, specialist)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                  description = COALESCE(excluded.description, diseases.description),
                  specialist = COALESCE(excluded.specialist, diseases.specialist)
                """,
                (name.strip(), description, specialist),
            )
            disease_id = conn.execute(
                "SELECT id FROM diseases WHERE name = ?", (name.strip(),)
            ).fetchone()["id"]
            for symptom in symptoms or []:
                self._link_symptom(conn, disease_id, symptom)
        return disease_id

    def _link_symptom(self, conn, disease_id, symptom, is_present=True):
        symptom = symptom.strip().lower()
        if not symptom:
            return
        conn.execute("INSERT OR IGNORE INTO symptoms (name) VALUES (?)", (symptom,))
        symptom_id = conn.execute("SELECT id FROM symptoms WHERE name = ?", (symptom,)).fetchone()["id"]
        conn.execute(
            """
            INSERT OR IGNORE INTO disease_symptoms (disease_id, symptom_id, is_present)
            VALUES (?, ?, ?)
            """,
            (disease_id, symptom_id, 1 if is_present else 0),
        )

    def count(self):
        with self._db.connection() as conn:
            return conn.execute("SELECT COUNT(*) AS n FROM diseases").fetchone()["n"]

    def list_diseases(self):
        """All diseases in insertion order, with their present symptoms."""
        with self._db.connection() as conn:
            rows = conn.execute(
                "SELECT id, name, description, specialist FROM diseases ORDER BY id"
            ).fetchall()
            links = conn.execute(
                """
                SELECT ds.disease_id, s.name
                FROM disease_symptoms ds
                JOIN symptoms s ON s.id = ds.symptom_id
                WHERE ds.is_present = 1
                ORDER BY ds.id
                """
            ).fetchall()

        symptoms_by_disease = {}
        for link in links:
            symptoms_by_disease.setdefault(link["disease_id"], []).append(link["name"])
        return [
            Disease(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                specialist=row["specialist"],
                symptoms=symptoms_by_disease.get(row["id"], []),
            )
            for row in rows
        ]


def _row_to_doctor(row):
    return Doctor(
        id=row["id"],
        name=row["name"],
        specialty=row["specialty"],
        location=row["location"],
        chamber=row["chamber"],
        experience=row["experience"],
        consultation_fee=row["consultation_fee"],
        education=row["education"],
        concentration=row["concentration"],
    )


class DoctorDirectory:
    def __init__(self, db):
        self._db = db

    def add_doctor(self, name, specialty=None, location=None, chamber=None, experience=None,
                   consultation_fee=None, education=None, concentration=None):
        with self._db.connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO doctors (
                  name, education, specialty, experience, chamber, location, concentration, consultation_fee
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (name, education, specialty, experience, chamber, location, concentration, consultation_fee),
            )
            return cur.lastrowid

    def remove_doctor(self, doctor_id):
        with self._db.connection() as conn:
            conn.execute("DELETE FROM doctors WHERE id = ?", (doctor_id,))

    def count(self):
        with self._db.connection() as conn:
            return conn.execute("SELECT COUNT(*) AS n FROM doctors").fetchone()["n"]

    def list_doctors(self):
        with self._db.connection() as conn:
            rows = conn.execute("SELECT * FROM doctors ORDER BY id").fetchall()
        return [_row_to_doctor(row) for row in rows]

    def get_doctor(self, doctor_id):
        with self._db.connection() as conn:
            row = conn.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
        return _row_to_doctor(row) if row else None


class ChatTranscript:
    """Append-only log of user and bot messages."""

    def __init__(self, db):
        self._db = db

    def append(self, message):
        timestamp = message.timestamp or utc_now()
        with self._db.connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO chat_messages (
                  owner_id, message, is_from_user, timestamp, detected_disease, recommended_doctor_id
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.owner_id,
                    message.message,
                    1 if message.is_from_user else 0,
                    to_iso(timestamp),
                    message.detected_disease,
                    message.recommended_doctor_id,
                ),
            )
            return cur.lastrowid

    def history(self, owner_id, limit=None):
        """Messages for an owner, oldest first; with a limit, only the most recent ones."""
        sql = "SELECT * FROM chat_messages WHERE owner_id = ? ORDER BY timestamp DESC, id DESC"
        params = [owner_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(max(0, int(limit)))
        with self._db.connection() as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
        return [
            ChatMessage(
                id=row["id"],
                owner_id=row["owner_id"],
                message=row["message"],
                is_from_user=bool(row["is_from_user"]),
                timestamp=parse_iso(row["timestamp"]),
                detected_disease=row["detected_disease"],
                recommended_doctor_id=row["recommended_doctor_id"],
            )
            for row in reversed(rows)
        ]


def _row_to_appointment(row):
    return Appointment(
        id=row["id"],
        owner_id=row["owner_id"],
        doctor_id=row["doctor_id"],
        appointment_date=parse_iso(row["appointment_date"]),
        created_at=parse_iso(row["created_at"]),
        status=AppointmentStatus(row["status"]),
        amount=row["amount"],
        is_paid=bool(row["is_paid"]),
        payment_reference=row["payment_reference"],
    )


class AppointmentStore:
    def __init__(self, db):
        self._db = db

    def create(self, owner_id, doctor_id, appointment_date, amount,
               status=AppointmentStatus.PENDING, is_paid=False):
        with self._db.connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO appointments (
                  owner_id, doctor_id, appointment_date, created_at, status, amount, is_paid
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (owner_id, doctor_id, to_iso(appointment_date), to_iso(utc_now()),
                 AppointmentStatus(status).value, amount, 1 if is_paid else 0),
            )
            return cur.lastrowid

    def get(self, appointment_id):
        with self._db.connection() as conn:
            row = conn.execute("SELECT * FROM appointments WHERE id = ?", (appointment_id,)).fetchone()
        return _row_to_appointment(row) if row else None

    def list_for_owner(self, owner_id):
        with self._db.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM appointments WHERE owner_id = ? ORDER BY id", (owner_id,)
            ).fetchall()
        return [_row_to_appointment(row) for row in rows]

    def mark_paid(self, appointment_id, payment_reference, appointment_date):
        """Confirm a verified payment in one transaction; already-paid rows are left alone."""
        with self._write_transaction() as conn:
            row = conn.execute("SELECT * FROM appointments WHERE id = ?", (appointment_id,)).fetchone()
            if row is None:
                return None
            if not row["is_paid"]:
                conn.execute(
                    """
                    UPDATE appointments
                    SET is_paid = 1, status = ?, payment_reference = ?, appointment_date = ?
                    WHERE id = ? AND is_paid = 0
                    """,
                    (AppointmentStatus.CONFIRMED.value, payment_reference, to_iso(appointment_date), appointment_id),
                )
                row = conn.execute("SELECT * FROM appointments WHERE id = ?", (appointment_id,)).fetchone()
            return _row_to_appointment(row)

    @contextmanager
    def _write_transaction(self):
        # BEGIN IMMEDIATE takes the write lock up front so the read and the update see the same row
        with self._db.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
