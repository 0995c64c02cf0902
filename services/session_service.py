from typing import Any, Dict, Optional

from models.errors import InvalidStateError
from models.schemas import SessionStatus, WorkoutPlan
from models.session_controller import SessionController
from utils.logging_utils import logger


class SessionRegistry:
    """
    Keeps at most one live session per user.
    Finished and aborted sessions are released so the user can start the next one.
    """

    def __init__(self, pipeline=None):
        self.pipeline = pipeline
        self._sessions: Dict[str, SessionController] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def get(self, user_id: str) -> Optional[SessionController]:
        return self._sessions.get(user_id)

    def require(self, user_id: str) -> SessionController:
        controller = self._sessions.get(user_id)
        if controller is None:
            raise InvalidStateError(f"No active session for {user_id}")
        return controller

    def start_session(self, user_id: str, plan: WorkoutPlan, **kwargs) -> SessionController:
        """Create and start a session, rejecting a second concurrent one for the same user"""
        existing = self._sessions.get(user_id)
        if existing is not None and existing.status in (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETE):
            raise InvalidStateError(f"User {user_id} already has an active session {existing.session_id}")

        kwargs.setdefault("pipeline", self.pipeline)
        controller = SessionController(plan, user_id=user_id, **kwargs)
        controller.start()
        self._sessions[user_id] = controller
        logger.info(f"Registered session {controller.session_id} for {user_id}")
        return controller

    def abort_session(self, user_id: str) -> Dict[str, Any]:
        controller = self.require(user_id)
        partial = controller.abort()
        self.release(user_id)
        return partial

    def release(self, user_id: str):
        """Forget the user's session once it is finished or aborted"""
        controller = self._sessions.get(user_id)
        if controller is not None and controller.status in (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETE):
            raise InvalidStateError(f"Session {controller.session_id} is still active")
        self._sessions.pop(user_id, None)

# Global registry instance
session_registry = SessionRegistry()
