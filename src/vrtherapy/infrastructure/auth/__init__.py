"""Authentication infrastructure package."""

from vrtherapy.infrastructure.auth.jwt_authenticator import Authenticator, JWTAuthenticator

__all__ = ["Authenticator", "JWTAuthenticator"]
