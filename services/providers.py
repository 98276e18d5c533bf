"""
FastAPI dependency providers for the shared service instances
"""
from functools import lru_cache

from fastapi import Depends

from auth.middleware import AuthMiddleware, get_auth_middleware
from config.settings import Settings, get_settings
from services.credit_ledger import CreditLedger
from services.generation_service import GenerationClient
from services.project_service import ProjectService
from services.user_service import UserService
from services.workspace import WorkspaceRegistry


@lru_cache(maxsize=1)
def get_generation_client() -> GenerationClient:
    return GenerationClient(get_settings())


@lru_cache(maxsize=1)
def get_workspace_registry() -> WorkspaceRegistry:
    settings = get_settings()
    return WorkspaceRegistry(
        idle_seconds=settings.workspace_idle_minutes * 60,
        max_per_user=settings.max_workspaces_per_user,
    )


def get_credit_ledger(settings: Settings = Depends(get_settings)) -> CreditLedger:
    return CreditLedger.from_settings(settings)


def get_user_service(
    auth_middleware: AuthMiddleware = Depends(get_auth_middleware),
    ledger: CreditLedger = Depends(get_credit_ledger),
) -> UserService:
    return UserService(auth_middleware.supabase, ledger)


def get_project_service(
    auth_middleware: AuthMiddleware = Depends(get_auth_middleware),
    settings: Settings = Depends(get_settings),
) -> ProjectService:
    return ProjectService(auth_middleware.supabase, ttl_hours=settings.project_ttl_hours)
