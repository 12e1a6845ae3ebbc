"""
Doctor Authentication

Bearer-token verification for doctor-facing endpoints. Credential
checks and account management live outside this service; this
collaborator only issues and verifies signed access tokens whose
subject is the doctor id.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import get_logger
from vrtherapy.domain.errors import Unauthorized
from vrtherapy.domain.models import DoctorIdentity

logger = get_logger(__name__)


class Authenticator(ABC):
    """Issues and verifies doctor access tokens."""
    
    @abstractmethod
    def issue_token(self, doctor_id: UUID) -> str:
        """Create an access token for an authenticated doctor."""
    
    @abstractmethod
    def verify(self, token: str) -> DoctorIdentity:
        """
        Verify a token.
        
        Raises:
            Unauthorized: Invalid, expired or malformed token
        """


class JWTAuthenticator(Authenticator):
    """
    HMAC-signed JWT access tokens.
    
    Usage:
        auth = JWTAuthenticator()
        token = auth.issue_token(doctor.id)
        identity = auth.verify(token)
    """
    
    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ) -> None:
        settings = get_settings().jwt
        self._secret = secret_key or settings.secret_key.get_secret_value()
        self._algorithm = algorithm or settings.algorithm
        self._expire = timedelta(minutes=expire_minutes or settings.access_token_expire_minutes)
    
    def issue_token(self, doctor_id: UUID) -> str:
        expire = datetime.now(timezone.utc) + self._expire
        claims = {"sub": str(doctor_id), "exp": expire}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)
    
    def verify(self, token: str) -> DoctorIdentity:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.info("Access token rejected", reason=str(e))
            raise Unauthorized("Not authorized, token failed") from e
        
        subject = payload.get("sub")
        if not subject:
            raise Unauthorized("Not authorized, token failed")
        try:
            doctor_id = UUID(subject)
        except ValueError as e:
            raise Unauthorized("Not authorized, token failed") from e
        
        return DoctorIdentity(doctor_id=doctor_id)
