import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tender_chat.api import chat, export, health
from tender_chat.clients.chat_client import ChatApiClient
from tender_chat.core.config import settings
from tender_chat.core.loader import ResourceLoader
from tender_chat.core.logging import setup_logging
from tender_chat.export.cell_state import CellExportGuard
from tender_chat.export.orchestrator import ExportOrchestrator
from tender_chat.export.spreadsheet import SpreadsheetWriter, TemplateStore
from tender_chat.rendering.chart_adapter import ChartRenderAdapter
from tender_chat.rendering.matplotlib_engine import ChartEngineRegistry

# --- Setup logging FIRST --- #
setup_logging()
logger = logging.getLogger(__name__)
logger.info("Logging configured.")
# ------------------------ #

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Starting up Tender Status Chat API")
    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    chart_registry = ChartEngineRegistry()
    engine_loader = ResourceLoader("chart-engine", probe=chart_registry.probe, load=chart_registry.load)
    chart_adapter = ChartRenderAdapter(engine_loader)
    template_store = TemplateStore(http_client=http_client)

    app.state.chat_client = ChatApiClient(http_client)
    app.state.chart_registry = chart_registry
    app.state.chart_adapter = chart_adapter
    app.state.template_store = template_store
    app.state.export_orchestrator = ExportOrchestrator(http_client, SpreadsheetWriter(template_store))
    app.state.export_guard = CellExportGuard()
    logger.info(f"Lifespan: Chat endpoint {settings.CHAT_API_URL}, export endpoint {settings.export_api_url}")
    logger.info("Lifespan: Application startup tasks complete.")
    yield

    logger.info("Lifespan: Shutting down Tender Status Chat API")
    await chart_adapter.close()
    template_store.loader.cancel()
    await http_client.aclose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Tender Status Chat API - charts, annotated tables and cell-level spreadsheet exports for tender status queries",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Rendered chart images
app.mount(settings.CHART_URL_BASE, StaticFiles(directory=settings.CHART_DIR), name="charts")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat.router, prefix=settings.API_V1_STR, tags=["chat"])
app.include_router(export.router, prefix=settings.API_V1_STR, tags=["export"])
app.include_router(health.router, prefix=settings.API_V1_STR, tags=["health"])

logger.info("FastAPI app created and configured.")

if __name__ == "__main__":
    logger.info(f"Starting Uvicorn server. Host=0.0.0.0, Port=8000, Reload={settings.DEBUG}")
    uvicorn.run(
        "tender_chat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
