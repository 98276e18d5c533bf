"""
User and credit routes for Doveable
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Any, Dict, List
import logging

from auth.dependencies import get_current_user, require_admin
from config.credit_config import CREDIT_PACKS, get_credit_pack
from models.user import UserResponse
from services.errors import NotFoundError
from services.project_service import ProjectService
from services.providers import get_project_service, get_user_service, get_workspace_registry
from services.user_service import UserService
from services.workspace import WorkspaceRegistry

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

class CreditGrantRequest(BaseModel):
    amount: int = Field(..., gt=0)

@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: dict = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """
    Get the current profile with today's free credits applied
    """
    profile = await user_service.load_profile(current_user["id"], current_user["email"])
    return UserResponse.from_profile(profile)

@router.put("/me/storage", response_model=UserResponse)
async def link_storage(
    current_user: dict = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    project_service: ProjectService = Depends(get_project_service),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Keep projects permanently: existing ones stop expiring and open
    workspaces save without an expiry from now on
    """
    profile = await user_service.set_storage_linked(current_user["id"], current_user["email"], True)
    await project_service.make_projects_permanent(current_user["id"])
    registry.set_permanent(current_user["id"], True)
    return UserResponse.from_profile(profile)

@router.delete("/me/storage", response_model=UserResponse)
async def unlink_storage(
    current_user: dict = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Fall back to temporary storage; projects saved from now on expire again
    """
    profile = await user_service.set_storage_linked(current_user["id"], current_user["email"], False)
    registry.set_permanent(current_user["id"], False)
    return UserResponse.from_profile(profile)

@router.get("/credits/packs")
async def get_credit_packs(user_service: UserService = Depends(get_user_service)):
    """
    Purchasable credit packs and the cost of one generation
    """
    return {
        "packs": CREDIT_PACKS,
        "generation_cost": user_service.ledger.cost,
        "daily_free_credits": user_service.ledger.daily_grant,
    }

@router.get("/credits/packs/{pack_id}")
async def get_credit_pack_details(pack_id: int):
    try:
        return get_credit_pack(pack_id)
    except KeyError:
        raise NotFoundError("Credit pack not found")

@router.get("/admin/profiles")
async def get_all_profiles(
    admin_user: dict = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> List[Dict[str, Any]]:
    return await user_service.get_all_profiles()

@router.post("/admin/profiles/{user_id}/credits")
async def grant_purchased_credits(
    user_id: str,
    request: CreditGrantRequest,
    admin_user: dict = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
):
    """
    Add purchased credits to a user, e.g. after a manual payment
    """
    account = await user_service.add_purchased_credits(user_id, request.amount)
    logger.info(f"{admin_user['email']} granted {request.amount} credits to {user_id}")
    return {
        "user_id": user_id,
        "free_coins": account.free_credits,
        "purchased_coins": account.purchased_credits,
        "total_coins": account.total,
    }
