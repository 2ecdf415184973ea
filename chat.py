"""FastAPI router for the scripted ad-demo chat."""

from __future__ import annotations

import datetime as dt
import logging
import os
import threading
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

import ceed_ads
from ceed_ads import AdRecord, CeedAdsError
from scenario_engine import conversation, state_machine, templates

logger = logging.getLogger(__name__)

router = APIRouter()


# Sessions live in process memory only; a restart starts every conversation over.
_SESSIONS: Dict[str, conversation.ChatSession] = {}
_SESSION_LOCKS: Dict[str, threading.Lock] = {}
_STORE_LOCK = threading.Lock()

# Least recently used sessions are dropped past this many.
MAX_SESSIONS = 500


class ScenarioSummary(BaseModel):
    id: str
    title: str
    description: str
    turn_count: int
    keywords: List[str]
    ad_formats: List[str]


class ScenarioTurn(BaseModel):
    role: str
    text: str


class ScenarioDetail(ScenarioSummary):
    turns: List[ScenarioTurn]


class DetectRequest(BaseModel):
    text: str


class DetectResponse(BaseModel):
    scenario_id: Optional[str] = None


class ChatMessage(BaseModel):
    id: str
    role: str
    text: str = ""
    timestamp: dt.datetime
    ad: Optional[AdRecord] = None
    request_id: Optional[str] = None


class SessionState(BaseModel):
    session_id: str
    conversation_id: str
    active_scenario: Optional[str] = None
    turn_cursor: int = 0
    finished: bool = True


class SessionDetail(SessionState):
    messages: List[ChatMessage]


class SendMessageRequest(BaseModel):
    text: str = Field(..., description="What the user typed.")


class SendMessageResponse(BaseModel):
    messages: List[ChatMessage]
    state: SessionState
    reply_delay_ms: int = Field(0, description="Suggested pause before showing the reply.")


class AdEventRequest(BaseModel):
    event_type: str = Field(..., description="impression, click, submit or option_tap.")
    ad_id: str
    request_id: Optional[str] = None
    payload: dict = {}


class AdEventResponse(BaseModel):
    tracked: bool


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        logger.warning("Ignoring invalid %s", name)
        return default


def _configured_fallback():
    raw = os.getenv("SCENARIO_FALLBACK")
    try:
        return state_machine.parse_fallback(raw)
    except ValueError:
        logger.warning("Unknown SCENARIO_FALLBACK=%r, using default scenario", raw)
        return state_machine.DEFAULT_FALLBACK


def _new_session() -> conversation.ChatSession:
    delay_range = (
        _float_env("CHAT_RESPONSE_DELAY_MIN", conversation.DEFAULT_DELAY_RANGE[0]),
        _float_env("CHAT_RESPONSE_DELAY_MAX", conversation.DEFAULT_DELAY_RANGE[1]),
    )
    return conversation.ChatSession(
        engine=state_machine.ScenarioEngine(fallback=_configured_fallback()),
        ad_client_provider=lambda: ceed_ads.get_client(),
        delay_range=delay_range,
    )


def _evict_idle_sessions() -> None:
    """Drop least recently used sessions over MAX_SESSIONS. Caller holds _STORE_LOCK."""
    while len(_SESSIONS) > MAX_SESSIONS:
        oldest = next(iter(_SESSIONS))
        del _SESSIONS[oldest]
        _SESSION_LOCKS.pop(oldest, None)
        logger.info("Evicted idle chat session %s", oldest)


def _get_session_or_404(session_id: str):
    with _STORE_LOCK:
        session = _SESSIONS.pop(session_id, None)
        lock = _SESSION_LOCKS.get(session_id)
        if session is not None:
            # Re-insert so the store stays ordered by last use
            _SESSIONS[session_id] = session
    if session is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session, lock


def _state_model(session_id: str, session: conversation.ChatSession) -> SessionState:
    return SessionState(session_id=session_id, **session.state())


def _detail_model(session_id: str, session: conversation.ChatSession) -> SessionDetail:
    return SessionDetail(
        **_state_model(session_id, session).dict(),
        messages=[ChatMessage(**m) for m in session.messages],
    )


@router.get("/scenarios", response_model=List[ScenarioSummary])
def list_scenarios() -> List[ScenarioSummary]:
    """List the scripted scenarios with their trigger keywords."""
    return [ScenarioSummary(**s) for s in templates.get_all_summaries()]


@router.get("/scenarios/{scenario_id}", response_model=ScenarioDetail)
def get_scenario_detail(scenario_id: str) -> ScenarioDetail:
    scenario = templates.load_scenario(scenario_id)
    if not scenario:
        raise HTTPException(status_code=404, detail="Scenario not found")
    summary = next(s for s in templates.get_all_summaries() if s["id"] == scenario["id"].value)
    return ScenarioDetail(
        **summary,
        turns=[ScenarioTurn(**t) for t in scenario["turns"]],
    )


@router.post("/detect", response_model=DetectResponse)
def detect_scenario(req: DetectRequest) -> DetectResponse:
    """Which scenario would this opening message start? Does not touch any session."""
    detected = state_machine.ScenarioEngine(fallback=_configured_fallback()).detect(req.text)
    return DetectResponse(scenario_id=detected.value if detected else None)


@router.post("/sessions", response_model=SessionDetail)
def create_session() -> SessionDetail:
    session_id = str(uuid.uuid4())
    session = _new_session()
    with _STORE_LOCK:
        _SESSIONS[session_id] = session
        _SESSION_LOCKS[session_id] = threading.Lock()
        _evict_idle_sessions()
    logger.info("Created chat session %s (%s)", session_id, session.conversation_id)
    return _detail_model(session_id, session)


@router.get("/sessions/{session_id}", response_model=SessionDetail)
def get_session(session_id: str) -> SessionDetail:
    session, lock = _get_session_or_404(session_id)
    with lock:
        return _detail_model(session_id, session)


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str) -> None:
    with _STORE_LOCK:
        session = _SESSIONS.pop(session_id, None)
        _SESSION_LOCKS.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Chat session not found")


@router.post("/sessions/{session_id}/messages", response_model=SendMessageResponse)
def send_message(session_id: str, req: SendMessageRequest) -> SendMessageResponse:
    """Submit user text and get back the new transcript entries.

    reply_delay_ms is a pacing hint for the typing indicator; the reply is
    already final when this returns.
    """
    session, lock = _get_session_or_404(session_id)
    with lock:
        new_messages = session.send_message(req.text)
        delay = session.next_reply_delay() if new_messages else 0.0
        return SendMessageResponse(
            messages=[ChatMessage(**m) for m in new_messages],
            state=_state_model(session_id, session),
            reply_delay_ms=int(delay * 1000),
        )


@router.post("/sessions/{session_id}/clear", response_model=SessionDetail)
def clear_session(session_id: str) -> SessionDetail:
    """Empty the transcript and reset scenario progress."""
    session, lock = _get_session_or_404(session_id)
    with lock:
        session.clear()
        return _detail_model(session_id, session)


@router.post("/ads/events", response_model=AdEventResponse)
def track_ad_event(req: AdEventRequest) -> AdEventResponse:
    """Forward an ad interaction to the SDK. Tracking failures never reach the user."""
    if req.event_type not in ceed_ads.EVENT_TYPES:
        raise HTTPException(status_code=422, detail=f"Unknown event type: {req.event_type}")

    client = ceed_ads.get_client()
    if client is None:
        return AdEventResponse(tracked=False)
    try:
        client.track_event(req.event_type, req.ad_id, request_id=req.request_id, payload=req.payload)
    except CeedAdsError as e:
        logger.warning("Ad event %s for %s not tracked: %s", req.event_type, req.ad_id, e)
        return AdEventResponse(tracked=False)
    return AdEventResponse(tracked=True)
