import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from tender_chat.api.dependencies import get_export_guard, get_export_orchestrator
from tender_chat.core.exceptions import (
    ExportError,
    ExportInProgress,
    ExportNetworkError,
    ExportServerError,
    LibraryLoadError,
    NoMatchingRows,
)
from tender_chat.export.cell_state import CellExportGuard
from tender_chat.export.orchestrator import ExportOrchestrator
from tender_chat.export.spreadsheet import build_message_workbook, query_results_filename
from tender_chat.schemas.export import CellExportRequest, ExportResult, RowsExportRequest
from tender_chat.tables.annotator import EXPORT_FAILED_TEXT, WRITER_UNAVAILABLE_TEXT, resolve_predicate

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_STATUS = [
    (ExportInProgress, status.HTTP_409_CONFLICT),
    (NoMatchingRows, status.HTTP_404_NOT_FOUND),
    (ExportNetworkError, status.HTTP_502_BAD_GATEWAY),
    (ExportServerError, status.HTTP_502_BAD_GATEWAY),
]


def export_error_status(error: ExportError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _download(result: ExportResult) -> Response:
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Row-Count": str(result.row_count),
        },
    )


@router.post("/export", tags=["export"])
async def export_cell(
    export_request: CellExportRequest,
    orchestrator: ExportOrchestrator = Depends(get_export_orchestrator),
    guard: CellExportGuard = Depends(get_export_guard),
):
    """Export the records behind one clicked table cell as a workbook."""
    log_prefix = f"[Export:{export_request.cell_id}] "
    if export_request.cell_role.is_filter:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filter columns are not exportable.")

    predicate = resolve_predicate(export_request.predicate, export_request.cell_role)
    try:
        async with guard.claim(export_request.cell_id):
            result = await orchestrator.export(predicate, export_request.cell_role)
    except ExportError as e:
        logger.warning(f"{log_prefix}Export failed ({type(e).__name__}): {e}")
        raise HTTPException(status_code=export_error_status(e), detail=e.user_message)
    except LibraryLoadError as e:
        logger.error(f"{log_prefix}Spreadsheet template unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=WRITER_UNAVAILABLE_TEXT,
        )
    except Exception as e:
        logger.error(f"{log_prefix}Unexpected export failure: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=EXPORT_FAILED_TEXT)
    return _download(result)


@router.post("/export/rows", tags=["export"])
async def export_rows(export_request: RowsExportRequest):
    """Export the rows (or the reply text) a chat message already carries."""
    if not export_request.rows and not (export_request.text or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to export.")
    content, row_count = build_message_workbook(export_request.rows, export_request.columns, export_request.text)
    logger.info(f"[Export:rows] Built workbook with {row_count} row(s).")
    return _download(ExportResult(filename=query_results_filename(), content=content, row_count=row_count))
