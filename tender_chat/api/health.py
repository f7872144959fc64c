import logging
import time
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tender_chat.api.dependencies import get_chart_registry, get_template_store
from tender_chat.core.config import settings
from tender_chat.export.spreadsheet import TemplateStore
from tender_chat.rendering.matplotlib_engine import ChartEngineRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    version: str
    endpoints: Dict[str, str]
    dependencies: Dict[str, str]
    uptime: float

# Global variable to track API start time
start_time = time.time()

@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    registry: ChartEngineRegistry = Depends(get_chart_registry),
    templates: TemplateStore = Depends(get_template_store),
):
    """Health check endpoint."""
    logger.debug("Health check requested")
    chart_engine = "ready" if registry.probe() is not None else "not_loaded"
    template = "loaded" if templates.probe() is not None else "not_loaded"

    return HealthResponse(
        status="healthy",
        version="1.0.0",
        endpoints={
            "chat_api": settings.CHAT_API_URL,
            "export_api": settings.export_api_url,
            "xlsx_template": settings.XLSX_TEMPLATE_URL,
        },
        dependencies={
            "chart_engine": chart_engine,
            "xlsx_template": template,
        },
        uptime=time.time() - start_time,
    )
