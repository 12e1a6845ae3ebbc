"""
Session Token Issuer

Generates the opaque token that identifies a session to the VR
runtime. Format: "VR" + epoch milliseconds + 9 random base36
characters, upper-cased. Tokens are human-illegible and unique; a
collision reported by the repository is retried with a fresh token
and never overwrites an existing session.
"""

import secrets
import string
from dataclasses import replace
from datetime import datetime
from typing import Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.errors import DuplicateSessionToken
from vrtherapy.domain.models import TherapySession
from vrtherapy.domain.repositories import TherapySessionRepository
from vrtherapy.domain.timeutils import utc_now

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9


def generate_session_token(now: Optional[datetime] = None) -> str:
    """Build a new session token from the current time and a random suffix."""
    moment = now or utc_now()
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))
    return f"VR{millis}{suffix}".upper()


class SessionTokenIssuer:
    """
    Assigns a unique token to a new session while persisting it.
    
    Usage:
        issuer = SessionTokenIssuer(max_attempts=3)
        session = await issuer.create_with_token(repository, session)
    """
    
    def __init__(self, max_attempts: int = 3) -> None:
        self._max_attempts = max(1, max_attempts)
    
    async def create_with_token(
        self,
        repository: TherapySessionRepository,
        session: TherapySession,
    ) -> TherapySession:
        """
        Insert the session with a freshly generated token.
        
        Raises:
            DuplicateSessionToken: If every attempt collided
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type(DuplicateSessionToken),
            before_sleep=self._log_collision,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                candidate = replace(session, session_token=generate_session_token())
                return await repository.create(candidate)
    
    @staticmethod
    def _log_collision(retry_state) -> None:
        logger.warning(
            "Session token collision, retrying",
            attempt=retry_state.attempt_number,
        )
