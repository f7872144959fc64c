import logging
from typing import Any, Dict, List, Optional

import httpx

from tender_chat.core.config import settings
from tender_chat.core.exceptions import (
    ExportNetworkError,
    ExportServerError,
    NoMatchingRows,
    ShapeMismatch,
)
from tender_chat.export.query_builder import build_export_request, compile_sql
from tender_chat.export.schema_definitions import EXPORT_COLUMN_LABELS, EXPORT_SOURCE_COLUMNS
from tender_chat.export.spreadsheet import SpreadsheetWriter, tender_export_filename
from tender_chat.rendering.normalizer import normalize_strict
from tender_chat.schemas.export import ExportResult
from tender_chat.schemas.table import CanonicalTable, ColumnRole, FilterPredicate

logger = logging.getLogger(__name__)


def project_rows(table: CanonicalTable) -> List[List[Any]]:
    """Map normalized rows onto the fixed 50-column export order.

    A value is looked up by source column name, then by its spreadsheet
    label, then case-insensitively. Columns the response lacks stay blank.
    """
    lookup: Dict[str, str] = {}
    for name in table.columns:
        lookup.setdefault(name, name)
        lookup.setdefault(name.lower(), name)

    resolved: List[Optional[str]] = []
    for source, label in zip(EXPORT_SOURCE_COLUMNS, EXPORT_COLUMN_LABELS):
        match = None
        for candidate in (source, label, source.lower(), label.lower()):
            if candidate in lookup:
                match = lookup[candidate]
                break
        resolved.append(match)

    missing = [source for source, match in zip(EXPORT_SOURCE_COLUMNS, resolved) if match is None]
    if missing:
        logger.debug(f"[ExportOrchestrator] Response lacks {len(missing)} export column(s): {missing}")

    return [[row[match] if match is not None else None for match in resolved] for row in table.rows]


class ExportOrchestrator:
    """Runs one cell export: filter -> SQL -> export endpoint -> normalized rows -> workbook."""

    def __init__(self, http_client: httpx.AsyncClient, writer: SpreadsheetWriter, export_url: Optional[str] = None):
        self._http_client = http_client
        self._writer = writer
        self.export_url = export_url or settings.export_api_url

    async def export(self, predicate: FilterPredicate, cell_role: ColumnRole) -> ExportResult:
        log_prefix = f"[ExportOrchestrator:{cell_role.value}] "
        request = build_export_request(predicate, cell_role)
        sql = compile_sql(request)
        logger.info(f"{log_prefix}Requesting export with {len(request.fragments)} filter fragment(s).")

        payload = await self._post({"direct_sql": sql})
        try:
            table = normalize_strict(payload, fallback_columns=EXPORT_SOURCE_COLUMNS)
        except ShapeMismatch as e:
            logger.info(f"{log_prefix}Export response carried no table: {e}")
            raise NoMatchingRows(str(e)) from e
        if table.is_empty:
            raise NoMatchingRows("Export query returned zero rows")

        rows = project_rows(table)
        content = await self._writer.write(EXPORT_COLUMN_LABELS, rows)
        filename = tender_export_filename(cell_role.file_label)
        logger.info(f"{log_prefix}Wrote {len(rows)} row(s) to {filename}.")
        return ExportResult(filename=filename, content=content, row_count=len(rows))

    async def _post(self, body: Dict[str, Any]) -> Any:
        try:
            response = await self._http_client.post(self.export_url, json=body, timeout=settings.HTTP_TIMEOUT_SECONDS)
        except httpx.RequestError as e:
            logger.error(f"[ExportOrchestrator] Export endpoint unreachable: {e}")
            raise ExportNetworkError(f"Request to {self.export_url} failed: {e}") from e

        if response.is_error:
            logger.error(f"[ExportOrchestrator] Export endpoint returned HTTP {response.status_code}: {response.text[:500]}")
            raise ExportServerError(f"HTTP {response.status_code} from export endpoint")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"[ExportOrchestrator] Export endpoint returned invalid JSON: {response.text[:500]}")
            raise ExportServerError("Invalid JSON from export endpoint") from e

        if isinstance(payload, dict) and (payload.get("error") or payload.get("success") is False):
            message = payload.get("error") or payload.get("message") or "unknown error"
            logger.error(f"[ExportOrchestrator] Export endpoint reported an error: {message}")
            raise ExportServerError(f"Export endpoint error: {message}")
        return payload
