"""
Authentication middleware for Doveable with local JWT validation
"""
import jwt
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
import logging
from supabase import create_client, Client

from config.settings import Settings, get_settings
from services.errors import ConfigurationError

logger = logging.getLogger(__name__)

# JWT settings
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


class AuthMiddleware:
    def __init__(self, settings: Settings, supabase_client: Optional[Client] = None):
        if not settings.supabase_jwt_secret:
            raise ConfigurationError("SUPABASE_JWT_SECRET environment variable is required")
        self.jwt_secret = settings.supabase_jwt_secret

        if supabase_client is None:
            if not settings.supabase_url:
                raise ConfigurationError("SUPABASE_URL environment variable is required")
            if not settings.supabase_service_key:
                raise ConfigurationError("SUPABASE_SERVICE_KEY environment variable is required")
            supabase_client = create_client(settings.supabase_url, settings.supabase_service_key)
            logger.info("Supabase client initialized with local JWT validation")

        self.supabase: Client = supabase_client

    def verify_token(self, credentials: HTTPAuthorizationCredentials) -> dict:
        """
        Verify a Supabase access token locally and return the caller's id and email
        """
        try:
            payload = jwt.decode(
                credentials.credentials,
                self.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=JWT_AUDIENCE
            )
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token has expired")
        except jwt.InvalidAudienceError:
            raise _unauthorized("Invalid token audience")
        except jwt.InvalidSignatureError:
            raise _unauthorized("Invalid token signature")
        except jwt.PyJWTError as e:
            logger.info(f"Rejected token: {e}")
            raise _unauthorized(f"Invalid token: {str(e)}")

        user_id = payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise _unauthorized("Invalid token: missing user information")

        return {"id": user_id, "email": email}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


# Global auth middleware instance - created on first use
auth_middleware: Optional[AuthMiddleware] = None

def get_auth_middleware() -> AuthMiddleware:
    """Get or create auth middleware instance"""
    global auth_middleware
    if auth_middleware is None:
        auth_middleware = AuthMiddleware(get_settings())
    return auth_middleware
