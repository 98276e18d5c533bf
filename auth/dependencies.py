"""
Authentication dependencies for Doveable
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import Settings, get_settings
from .middleware import AuthMiddleware, get_auth_middleware

security = HTTPBearer()

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth_middleware: AuthMiddleware = Depends(get_auth_middleware),
) -> dict:
    """
    Get current authenticated user
    """
    return auth_middleware.verify_token(credentials)

def require_admin(
    current_user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Dependency that raises unless the user's email is on the admin list.
    """
    if current_user["email"].lower() not in settings.admin_emails:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
