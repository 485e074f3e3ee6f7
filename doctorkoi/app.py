"""
app.py
FastAPI request handler for the Doctor Koi chat assistant.

Run with: uvicorn doctorkoi.app:app --port 9000
"""
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .booking import confirm_payment
from .config import get_settings
from .conversation import ConversationEngine
from .conversation_state import state_to_dict
from .database import AppointmentStore, ChatTranscript, Database, DiseaseCatalog, DoctorDirectory
from .dataset_cache import SymptomDatasetCache
from .llm_fallback import LLMClient
from .seed import seed_database
from .session_manager import SessionStore

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    message: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None


class PaymentConfirmation(BaseModel):
    payment_reference: str


@dataclass
class Services:
    engine: ConversationEngine
    sessions: SessionStore
    transcript: ChatTranscript
    appointments: AppointmentStore
    # external payment provider check: payment_reference -> bool
    payment_verifier: Optional[Callable[[str], bool]] = None


def build_services(settings=None):
    """Wire the database, dataset cache, LLM client and session store from settings."""
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO))

    db = Database(settings.db_path)
    catalog = DiseaseCatalog(db)
    doctors = DoctorDirectory(db)
    seed_database(catalog, doctors, settings.seed_dir, settings.dataset_path)

    llm = None
    if settings.groq_api_key:
        llm = LLMClient(settings.groq_api_key, url=settings.llm_url, model=settings.llm_model,
                        timeout=settings.llm_timeout)
    else:
        logger.info("GROQ_API_KEY not set, running with keyword matching and canned replies only")

    transcript = ChatTranscript(db)
    appointments = AppointmentStore(db)
    engine = ConversationEngine(
        catalog=catalog,
        doctors=doctors,
        appointments=appointments,
        dataset=SymptomDatasetCache.from_csv(settings.dataset_path),
        llm=llm,
        transcript=transcript,
        default_fee=settings.default_fee,
    )
    return Services(
        engine=engine,
        sessions=SessionStore(idle_minutes=settings.session_idle_minutes),
        transcript=transcript,
        appointments=appointments,
    )


def create_app(services=None, settings=None):
    @asynccontextmanager
    async def lifespan(app):
        if app.state.services is None:
            app.state.services = build_services(settings)
        yield

    app = FastAPI(title="Doctor Koi", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_services():
        if app.state.services is None:
            app.state.services = build_services(settings)
        return app.state.services

    # Global exception handler to always return JSON with a session_id
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        try:
            body = await request.json()
            session_id = body.get("session_id")
        except Exception:
            session_id = None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "response": "I'm sorry, but I encountered an error. Please try again.",
                "session_id": session_id or str(uuid.uuid4()),
            },
        )

    @app.post("/chat")
    def chat_endpoint(req: ChatRequest):
        user_input = (req.message or "").strip()
        if not user_input:
            raise HTTPException(status_code=400, detail="Message cannot be empty")

        svc = get_services()
        session_id = req.session_id or str(uuid.uuid4())
        session = svc.sessions.get_session(session_id)
        owner_id = req.user_id or session["owner_id"]

        result = svc.engine.respond(user_input, owner_id, session["state"])
        svc.sessions.save_state(session_id, state_to_dict(result.state), owner_id=owner_id)

        return {
            "response": result.response,
            "session_id": session_id,
            "current_step": result.state.current_step,
            "detected_disease": result.detected_disease,
            "recommended_doctor_id": result.recommended_doctor_id,
            "requires_location": result.requires_location,
            "appointment_id": result.appointment_id,
            "doctor_info": result.doctor.as_dict() if result.doctor else None,
        }

    @app.get("/chat/history")
    def chat_history(session_id: str):
        """Transcript of the owner bound to a live session."""
        svc = get_services()
        session = svc.sessions.find_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        messages = svc.transcript.history(session["owner_id"])
        return [
            {
                "message": m.message,
                "is_from_user": m.is_from_user,
                "timestamp": m.timestamp.isoformat() if m.timestamp else None,
            }
            for m in messages
        ]

    @app.get("/appointments/{appointment_id}")
    def get_appointment(appointment_id: int):
        appointment = get_services().appointments.get(appointment_id)
        if appointment is None:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment.as_dict()

    @app.post("/appointments/{appointment_id}/payment")
    def confirm_appointment_payment(appointment_id: int, req: PaymentConfirmation):
        svc = get_services()
        if svc.payment_verifier is None:
            raise HTTPException(status_code=503, detail="Payment verification is not configured")
        appointment = confirm_payment(svc.appointments, appointment_id, req.payment_reference,
                                      svc.payment_verifier)
        if appointment is None:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment.as_dict()

    @app.get("/")
    def read_root():
        return {"message": "Doctor Koi API is running. Use /chat endpoint."}

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
