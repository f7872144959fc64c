from fastapi import Request

from tender_chat.clients.chat_client import ChatApiClient
from tender_chat.export.cell_state import CellExportGuard
from tender_chat.export.orchestrator import ExportOrchestrator
from tender_chat.export.spreadsheet import TemplateStore
from tender_chat.rendering.chart_adapter import ChartRenderAdapter
from tender_chat.rendering.matplotlib_engine import ChartEngineRegistry

# Collaborators are created once in the application lifespan and kept on app.state

def get_chat_client(request: Request) -> ChatApiClient:
    return request.app.state.chat_client

def get_chart_adapter(request: Request) -> ChartRenderAdapter:
    return request.app.state.chart_adapter

def get_chart_registry(request: Request) -> ChartEngineRegistry:
    return request.app.state.chart_registry

def get_export_orchestrator(request: Request) -> ExportOrchestrator:
    return request.app.state.export_orchestrator

def get_export_guard(request: Request) -> CellExportGuard:
    return request.app.state.export_guard

def get_template_store(request: Request) -> TemplateStore:
    return request.app.state.template_store
