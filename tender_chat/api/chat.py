import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends

from tender_chat.api.dependencies import get_chart_adapter, get_chart_registry, get_chat_client
from tender_chat.clients.chat_client import ChatApiClient
from tender_chat.rendering import charting
from tender_chat.rendering.chart_adapter import ChartRenderAdapter
from tender_chat.rendering.matplotlib_engine import ChartEngineRegistry
from tender_chat.rendering.normalizer import normalize
from tender_chat.schemas.chat import ChatData, ChatRequest, ChatResponse, Error, RenderedChart
from tender_chat.schemas.table import AnnotatedTable
from tender_chat.tables.annotator import annotate_markdown
from tender_chat.tables.markdown import extract_tables

logger = logging.getLogger(__name__)

router = APIRouter()


def _annotated_tables(text: str) -> List[AnnotatedTable]:
    """Markdown tables in the reply that carry filter or metric columns."""
    annotated = [annotate_markdown(table) for table in extract_tables(text)]
    return [table for table in annotated if table.eligible]


async def _render_chart(
    container: str,
    message,
    table,
    adapter: ChartRenderAdapter,
    registry: ChartEngineRegistry,
) -> Optional[RenderedChart]:
    spec = charting.build(message.visualization, table)
    if spec is None:
        return None
    handle = await adapter.mount(container, spec)
    if handle is None:
        logger.warning(f"[Chart:{container}] Chart engine unavailable, dropping the chart.")
        return None
    image_url = registry.engine.image_url(container) if registry.engine is not None else None
    # The PNG outlives the figure; a one-shot HTTP render needs no live instance
    adapter.unmount(handle)
    return RenderedChart(spec=spec, image_url=image_url)


@router.post("/chat", response_model=ChatResponse, tags=["chat"])
async def chat(
    chat_request: ChatRequest,
    client: ChatApiClient = Depends(get_chat_client),
    adapter: ChartRenderAdapter = Depends(get_chart_adapter),
    registry: ChartEngineRegistry = Depends(get_chart_registry),
):
    request_id = uuid.uuid4()
    log_prefix = f"[ReqID: {request_id}] "
    logger.info(f"{log_prefix}Received chat query: {chat_request.query[:100]}")

    message = await client.send(chat_request.query)
    if message.is_error:
        return ChatResponse(
            request_id=request_id,
            status="error",
            data=ChatData(text=message.text),
            error=Error(code="CHAT_BACKEND_ERROR", message=message.text),
        )

    table = normalize(message.raw_data, fallback_columns=message.data_columns) if message.raw_data is not None else None
    chart = None
    if message.visualization is not None and table is not None:
        chart = await _render_chart(f"msg_{request_id.hex}", message, table, adapter, registry)
        if chart is None:
            logger.warning(f"{log_prefix}Visualization descriptor could not be applied, chart suppressed.")

    data = ChatData(
        text=message.text,
        sql_query=message.sql_query,
        table=table,
        chart=chart,
        annotated_tables=_annotated_tables(message.text),
        excel_download=message.excel_download,
        timestamp=message.timestamp,
    )
    logger.info(f"{log_prefix}Responding: table={'yes' if table else 'no'}, chart={'yes' if chart else 'no'}, annotated={len(data.annotated_tables)}")
    return ChatResponse(request_id=request_id, data=data)
