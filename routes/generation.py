"""
Code generation routes for Doveable
"""
from fastapi import APIRouter, Depends
import logging

from auth.dependencies import get_current_user
from models.generation import GenerateRequest, GeneratedCode
from services.errors import ConfigurationError, EmptyPromptError, InsufficientCreditsError
from services.generation_service import GenerationClient, has_usable_input
from services.providers import get_generation_client, get_user_service
from services.user_service import UserService

router = APIRouter(prefix="/api", tags=["Generation"])
logger = logging.getLogger(__name__)

@router.get("/status")
async def get_api_status(client: GenerationClient = Depends(get_generation_client)):
    """
    Report whether the generation backend has credentials configured
    """
    return {"isApiKeyConfigured": client.is_configured}

@router.post("/generate", response_model=GeneratedCode)
async def generate_code(
    request: GenerateRequest,
    current_user: dict = Depends(get_current_user),
    client: GenerationClient = Depends(get_generation_client),
    user_service: UserService = Depends(get_user_service),
):
    """
    Generate or edit a website in one call, without a workspace. The user is
    charged only when the reply is usable.
    """
    if not has_usable_input(request.prompt, request.attachment):
        raise EmptyPromptError("Enter a prompt or attach an image.")
    if not client.is_configured:
        raise ConfigurationError("GEMINI_API_KEY is not configured on the server.")

    ledger = user_service.ledger
    account = await user_service.load_account(current_user["id"], current_user["email"])
    if not ledger.check_and_reserve(account):
        logger.info(f"User {current_user['id']} is out of credits")
        raise InsufficientCreditsError(required=ledger.cost, available=account.total)

    code = await client.generate(
        request.prompt,
        attachment=request.attachment,
        existing_code=request.existing_code,
        personalization_context=request.personalization_context,
    )
    await user_service.charge_generation(current_user["id"], current_user["email"])
    return code
