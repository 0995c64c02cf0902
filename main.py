# main.py
import time
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import config
from utils.logging_utils import logger
from models.errors import InvalidStateError, ValidationError, WorkoutEngineError
from models.schemas import (
    ActualPerformance,
    BadgeState,
    CompletionResult,
    Feedback,
    FeedbackSignals,
    GamificationProfile,
    SessionSnapshot,
    WorkoutPlan,
)
from services.completion_service import completion_pipeline
from services.notification_service import notification_service
from services.plan_service import PlanGenerator, plan_service
from services.session_service import session_registry

app = FastAPI(title=f"Workout Session Engine - {config.mode_description}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# In-memory stand-ins for the persistence collaborator
profiles: Dict[str, GamificationProfile] = {}
badge_states: Dict[str, List[BadgeState]] = {}
feedback_signals: Dict[str, FeedbackSignals] = {}

# External plan generator (GenerationRequest -> plan); None serves the fallback plan
workout_generator: Optional[PlanGenerator] = None


class StartSessionRequest(BaseModel):
    plan: Optional[Dict[str, Any]] = None     # Plan from the generator, validated before use
    duration_minutes: int = 30


class StartSessionResponse(BaseModel):
    session: SessionSnapshot
    plan: WorkoutPlan
    fallback_used: bool = False
    notice: Optional[str] = None


class TickRequest(BaseModel):
    elapsed_ms: int = Field(ge=0)


class FinishRequest(BaseModel):
    feedback: Feedback
    today: Optional[date] = None


def _http_error(e: WorkoutEngineError) -> HTTPException:
    """Map engine errors onto HTTP status codes"""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, InvalidStateError):
        return HTTPException(status_code=409, detail=str(e))
    logger.error(f"Unexpected engine error: {e}")
    return HTTPException(status_code=500, detail=str(e))


def _profile_for(user_id: str) -> GamificationProfile:
    if user_id not in profiles:
        profiles[user_id] = GamificationProfile(user_id=user_id)
    return profiles[user_id]


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting in: {config.mode_description}")
    logger.info(f"Completion threshold: {config.completion_threshold}%")


@app.get("/health")
async def health_check():
    """Simple health check endpoint for service monitoring"""
    return {"status": "healthy", "timestamp": time.time()}


@app.post("/sessions/{user_id}/start", response_model=StartSessionResponse)
async def start_session(user_id: str, request: Optional[StartSessionRequest] = None):
    """
    Start today's workout for a user.
    A missing or invalid plan is replaced by the fallback routine with a notice.
    """
    request = request or StartSessionRequest()
    fallback_used = False
    notice = None

    if request.plan is not None:
        try:
            plan = plan_service.ensure_valid(request.plan)
        except WorkoutEngineError as e:
            logger.warning(f"Rejected plan for {user_id}: {e}")
            plan = plan_service.fallback_plan(request.duration_minutes)
            fallback_used = True
            notice = "We couldn't use your generated workout, so here's a default routine instead."
    else:
        generation_request = plan_service.build_request(
            duration_minutes=request.duration_minutes,
            prior_feedback_signals=feedback_signals.get(user_id),
        )
        plan = plan_service.resolve_plan(workout_generator, generation_request)
        fallback_used = plan == plan_service.fallback_plan(request.duration_minutes)

    try:
        controller = session_registry.start_session(user_id, plan)
    except WorkoutEngineError as e:
        raise _http_error(e)

    return StartSessionResponse(
        session=controller.snapshot(),
        plan=plan,
        fallback_used=fallback_used,
        notice=notice,
    )


@app.get("/sessions/{user_id}", response_model=SessionSnapshot)
async def get_session(user_id: str):
    controller = session_registry.get(user_id)
    if controller is None:
        raise HTTPException(status_code=404, detail=f"No session for {user_id}")
    return controller.snapshot()


@app.post("/sessions/{user_id}/sets", response_model=SessionSnapshot)
async def record_set(user_id: str, actual: ActualPerformance):
    try:
        return session_registry.require(user_id).record_set(actual)
    except WorkoutEngineError as e:
        raise _http_error(e)


@app.post("/sessions/{user_id}/tick", response_model=SessionSnapshot)
async def tick(user_id: str, request: TickRequest):
    try:
        controller = session_registry.require(user_id)
        controller.tick(request.elapsed_ms)
        return controller.snapshot()
    except WorkoutEngineError as e:
        raise _http_error(e)


@app.post("/sessions/{user_id}/skip_rest", response_model=SessionSnapshot)
async def skip_rest(user_id: str):
    try:
        return session_registry.require(user_id).skip_rest()
    except WorkoutEngineError as e:
        raise _http_error(e)


@app.post("/sessions/{user_id}/go_back", response_model=SessionSnapshot)
async def go_back(user_id: str):
    try:
        controller = session_registry.require(user_id)
        controller.go_back()
        return controller.snapshot()
    except WorkoutEngineError as e:
        raise _http_error(e)


@app.post("/sessions/{user_id}/abort")
async def abort_session(user_id: str):
    """Abort the session; the partial log is returned but not stored"""
    try:
        return session_registry.abort_session(user_id)
    except WorkoutEngineError as e:
        raise _http_error(e)


@app.post("/sessions/{user_id}/finish", response_model=CompletionResult)
async def finish_session(user_id: str, request: FinishRequest):
    """
    Run the completion pipeline and store the updated profile and badges.
    Repeating the call returns the first result without awarding XP again.
    """
    try:
        controller = session_registry.require(user_id)
        result = controller.finish(
            profile=_profile_for(user_id),
            feedback=request.feedback,
            badge_states=badge_states.get(user_id),
            today=request.today,
        )
    except WorkoutEngineError as e:
        raise _http_error(e)

    profiles[user_id] = result.profile
    badge_states[user_id] = result.badge_states
    if result.feedback_recorded:
        feedback_signals[user_id] = result.feedback_signals
    return result


@app.get("/profiles/{user_id}", response_model=GamificationProfile)
async def get_profile(user_id: str):
    return _profile_for(user_id)


@app.get("/notifications")
async def drain_notifications():
    """Hand queued notification events to the delivery layer"""
    return [event.model_dump() for event in notification_service.drain()]


@app.get("/completions/{session_id}/{day}", response_model=CompletionResult)
async def get_completion(session_id: str, day: date):
    result = completion_pipeline.lookup(session_id, day)
    if result is None:
        raise HTTPException(status_code=404, detail="No completion recorded")
    return result
