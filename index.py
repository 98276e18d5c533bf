import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from routes.generation import router as generation_router
from routes.projects import router as projects_router
from routes.users import router as users_router
from routes.workspaces import router as workspaces_router
from services.errors import DoveableError
from services.providers import get_workspace_registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('doveable.log')
    ]
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title="Doveable AI Backend",
    description="AI website builder: prompt -> HTML/CSS/JS -> sandboxed preview",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(generation_router)
app.include_router(workspaces_router)
app.include_router(projects_router)
app.include_router(users_router)


@app.exception_handler(DoveableError)
async def doveable_error_handler(request: Request, exc: DoveableError):
    """Render service errors as {"error": message} with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event():
    """Log the effective configuration on startup."""
    logger.info("✅ Doveable Backend started successfully")
    logger.info(f"✅ Generation model: {settings.gemini_model}")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail until it is configured")


@app.on_event("shutdown")
async def shutdown_event():
    """Flush unsaved workspaces before the process exits."""
    await get_workspace_registry().close_all()
    logger.info("Doveable Backend stopped")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "model": settings.gemini_model,
    }
