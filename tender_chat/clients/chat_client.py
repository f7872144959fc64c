import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tender_chat.core.config import settings
from tender_chat.schemas.chat import AssistantMessage, VisualizationDescriptor

logger = logging.getLogger(__name__)

FALLBACK_ERROR_TEXT = "Sorry, I encountered an error. Please try again."
EMPTY_RESPONSE_TEXT = "No response received."


def _data_rows(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("rows"), list):
        return data["rows"]
    if isinstance(data, list):
        return data
    return None


def _data_columns(payload: Dict[str, Any]) -> Optional[List[str]]:
    data = payload.get("data")
    candidates = []
    if isinstance(data, dict):
        candidates.extend([data.get("columns"), data.get("columnNames")])
    candidates.append(payload.get("columns"))
    for candidate in candidates:
        if isinstance(candidate, list) and candidate:
            return [column.get("name", "") if isinstance(column, dict) else str(column) for column in candidate]
    return None


def _visualization(payload: Dict[str, Any]) -> Optional[VisualizationDescriptor]:
    raw = payload.get("visualization")
    if not isinstance(raw, dict):
        return None
    try:
        return VisualizationDescriptor.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"[ChatApiClient] Ignoring malformed visualization descriptor: {e.errors()}")
        return None


def build_assistant_message(payload: Any) -> AssistantMessage:
    """Assemble the assistant turn from a backend chat response body."""
    if not isinstance(payload, dict):
        logger.error(f"[ChatApiClient] Unexpected chat response type: {type(payload).__name__}")
        return AssistantMessage(text=FALLBACK_ERROR_TEXT, is_error=True)

    rows = _data_rows(payload.get("data"))
    return AssistantMessage(
        text=payload.get("response") or EMPTY_RESPONSE_TEXT,
        sql_query=payload.get("sql"),
        data_rows=rows,
        data_columns=_data_columns(payload),
        visualization=_visualization(payload),
        excel_download=bool(rows),
        raw_data=payload.get("data"),
    )


class ChatApiClient:
    """Client for the backend chat endpoint (POST {"query": ...})."""

    def __init__(self, http_client: httpx.AsyncClient, url: Optional[str] = None):
        self._http_client = http_client
        self.url = url or settings.CHAT_API_URL

    async def send(self, query: str) -> AssistantMessage:
        """Never raises: backend failures become the fallback assistant message."""
        try:
            response = await self._http_client.post(self.url, json={"query": query}, timeout=settings.HTTP_TIMEOUT_SECONDS)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[ChatApiClient] Chat backend returned HTTP {e.response.status_code}: {e.response.text[:500]}")
            return AssistantMessage(text=FALLBACK_ERROR_TEXT, is_error=True)
        except httpx.RequestError as e:
            logger.error(f"[ChatApiClient] Chat backend unreachable: {e}")
            return AssistantMessage(text=FALLBACK_ERROR_TEXT, is_error=True)
        except ValueError as e:
            logger.error(f"[ChatApiClient] Chat backend returned invalid JSON: {e}")
            return AssistantMessage(text=FALLBACK_ERROR_TEXT, is_error=True)

        message = build_assistant_message(payload)
        logger.info(f"[ChatApiClient] Received response: {len(message.data_rows or [])} row(s), visualization={message.visualization is not None}")
        return message
