from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from sealhook.dependencies import get_template_cache
from sealhook.domain.templates import TemplateCache

router = APIRouter()


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    return "pong"


@router.get("/health/live")
async def liveness(templates: TemplateCache = Depends(get_template_cache)):
    """Liveness probe: Service is running."""
    return {"status": "ok", "checks": {"api": "ok"}, "cached_templates": len(templates)}
