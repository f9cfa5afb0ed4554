from fastapi import APIRouter
from ...core.config import settings

router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    return {"status": "ParseAPI is running"}


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "app": settings.app_name,
        "env": settings.app_env,
        "openai_configured": settings.openai_configured,
        "store": "supabase" if settings.supabase_configured else "in_memory",
    }
