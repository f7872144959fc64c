import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from tender_chat.core.exceptions import ExportError, ExportInProgress, LibraryLoadError
from tender_chat.export.cell_state import CellExportGuard
from tender_chat.schemas.export import ExportResult
from tender_chat.schemas.table import (
    AnnotatedCell,
    AnnotatedRow,
    AnnotatedTable,
    ColumnRole,
    FilterPredicate,
    MarkdownTable,
)
from tender_chat.tables.classifier import classify, normalize_header

logger = logging.getLogger(__name__)

EXPORT_FAILED_TEXT = "The export failed. Please try again."
WRITER_UNAVAILABLE_TEXT = "The spreadsheet writer is not available. Please try again later."

_NUMERIC_TEXT = re.compile(r"^[-+]?\d[\d,]*(\.\d+)?$")
_PREDICATE_FIELDS = {
    "rcStatus": "rc_status",
    "tenderProgress": "tender_progress",
    "statusAction": "status_action",
}


def is_numeric_text(text: str) -> bool:
    return bool(_NUMERIC_TEXT.match((text or "").strip()))


def is_total_marker(text: str) -> bool:
    normalized = normalize_header(text)
    return normalized.startswith("total") or normalized.startswith("grand total")


def row_predicate(cells: Sequence[str], headers: Sequence[str], roles: Dict[str, ColumnRole]) -> FilterPredicate:
    """Collect the row's filter-column values. Empty cells are left unset."""
    values = {}
    for header, text in zip(headers, cells):
        key = roles[header].filter_key
        if key and (text or "").strip():
            values[_PREDICATE_FIELDS[key]] = text.strip()
    return FilterPredicate(**values)


def resolve_predicate(base: FilterPredicate, cell_role: ColumnRole) -> FilterPredicate:
    """Add the flags implied by the clicked cell's role to a row predicate."""
    update = {}
    if cell_role is ColumnRole.EDL:
        update["edl_flag"] = True
    elif cell_role is ColumnRole.NON_EDL:
        update["edl_flag"] = False
    elif cell_role.abc_letter:
        update["abc_category"] = cell_role.abc_letter
    elif cell_role is ColumnRole.TOTAL_ABC:
        update["abc_category"] = "ABC"
    return base.model_copy(update=update)


def annotate_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> AnnotatedTable:
    """Pure annotation: column roles, per-row predicates and clickable cells."""
    headers = list(headers)
    roles = classify(headers)
    eligible = any(role.is_filter or role.is_metric for role in roles.values())
    table = AnnotatedTable(headers=headers, roles=roles, eligible=eligible)
    if not eligible:
        return table

    rc_status_index = next((i for i, h in enumerate(headers) if roles[h] is ColumnRole.RC_STATUS), None)
    for index, raw_row in enumerate(rows):
        texts = [(text or "").strip() for text in raw_row]
        texts = (texts + [""] * len(headers))[:len(headers)]
        is_total = rc_status_index is not None and is_total_marker(texts[rc_status_index])

        cells = []
        for header, text in zip(headers, texts):
            role = roles[header]
            clickable = not is_total and not role.is_filter and (role.is_metric or is_numeric_text(text))
            cells.append(AnnotatedCell(column=header, text=text, role=role, clickable=clickable))

        table.rows.append(AnnotatedRow(
            index=index,
            cells=cells,
            predicate=row_predicate(texts, headers, roles),
            is_total=is_total,
        ))
    return table


def annotate_markdown(table: MarkdownTable) -> AnnotatedTable:
    return annotate_table(table.headers, table.rows)


# --- Binding stage ---
ClickHandler = Callable[[], Awaitable[bool]]


class TableSurface(Protocol):
    """A concrete rendering of a results table that click handlers can be bound to."""
    surface_id: str

    def header_texts(self) -> List[str]: ...
    def row_count(self) -> int: ...
    def cell_text(self, row: int, column: int) -> str: ...
    def is_bound(self, row: int, column: int) -> bool: ...
    def bind(self, row: int, column: int, handler: ClickHandler) -> None: ...
    def set_busy(self, row: int, column: int, busy: bool) -> None: ...


class GridSurface:
    """In-memory table surface (headers + mutable cell texts)."""

    def __init__(self, surface_id: str, headers: Sequence[str], rows: Sequence[Sequence[str]]):
        self.surface_id = surface_id
        self._headers = list(headers)
        self._rows = [list(row) + [""] * (len(self._headers) - len(row)) for row in rows]
        self._handlers: Dict[Tuple[int, int], ClickHandler] = {}
        self.busy: Dict[Tuple[int, int], bool] = {}

    @classmethod
    def from_markdown(cls, surface_id: str, table: MarkdownTable) -> "GridSurface":
        return cls(surface_id, table.headers, table.rows)

    def header_texts(self) -> List[str]:
        return list(self._headers)

    def row_count(self) -> int:
        return len(self._rows)

    def cell_text(self, row: int, column: int) -> str:
        return self._rows[row][column]

    def set_text(self, row: int, column: int, text: str) -> None:
        self._rows[row][column] = text

    def is_bound(self, row: int, column: int) -> bool:
        return (row, column) in self._handlers

    def bind(self, row: int, column: int, handler: ClickHandler) -> None:
        self._handlers[(row, column)] = handler

    def bound_cells(self) -> List[Tuple[int, int]]:
        return sorted(self._handlers)

    def set_busy(self, row: int, column: int, busy: bool) -> None:
        self.busy[(row, column)] = busy

    async def click(self, row: int, column: int) -> bool:
        handler = self._handlers.get((row, column))
        if handler is None:
            return False
        return await handler()


class ExportRunner(Protocol):
    async def export(self, predicate: FilterPredicate, cell_role: ColumnRole) -> ExportResult: ...


class DownloadSink(Protocol):
    def save(self, result: ExportResult) -> str: ...


class Notifier(Protocol):
    def notify(self, message: str, level: str = "info") -> None: ...


class TableAnnotator:
    """Binds export handlers to the clickable cells of a table surface.

    ``annotate()`` may run on every render: cells already bound are skipped.
    Filter values are read back from the surface at click time, so edits to
    the rendered table after binding are honored.
    """

    def __init__(
        self,
        orchestrator: ExportRunner,
        sink: DownloadSink,
        notifier: Notifier,
        guard: Optional[CellExportGuard] = None,
    ):
        self._orchestrator = orchestrator
        self._sink = sink
        self._notifier = notifier
        self._guard = guard or CellExportGuard()

    def annotate(self, surface: TableSurface) -> int:
        """Bind every clickable, not yet bound cell. Returns the number of new bindings."""
        log_prefix = f"[TableAnnotator:{surface.surface_id}] "
        headers = surface.header_texts()
        rows = [
            [surface.cell_text(row, col) for col in range(len(headers))]
            for row in range(surface.row_count())
        ]
        table = annotate_table(headers, rows)
        if not table.eligible:
            logger.debug(f"{log_prefix}No filter or metric columns, table left as-is.")
            return 0

        bound = 0
        for annotated_row in table.rows:
            for col, cell in enumerate(annotated_row.cells):
                if not cell.clickable or surface.is_bound(annotated_row.index, col):
                    continue
                surface.bind(annotated_row.index, col, self._click_handler(surface, annotated_row.index, col, cell.role))
                bound += 1
        logger.info(f"{log_prefix}Bound {bound} new cell(s) across {len(table.rows)} row(s).")
        return bound

    def _click_handler(self, surface: TableSurface, row: int, col: int, role: ColumnRole) -> ClickHandler:
        async def handler() -> bool:
            return await self.handle_click(surface, row, col, role)
        return handler

    def current_predicate(self, surface: TableSurface, row: int, role: ColumnRole) -> FilterPredicate:
        headers = surface.header_texts()
        roles = classify(headers)
        cells = [surface.cell_text(row, col) for col in range(len(headers))]
        return resolve_predicate(row_predicate(cells, headers, roles), role)

    async def handle_click(self, surface: TableSurface, row: int, col: int, role: ColumnRole) -> bool:
        """Run one cell export. Returns True when a file was produced."""
        cell_id = f"{surface.surface_id}:{row}:{col}"
        log_prefix = f"[TableAnnotator:{cell_id}] "
        try:
            async with self._guard.claim(cell_id):
                surface.set_busy(row, col, True)
                try:
                    predicate = self.current_predicate(surface, row, role)
                    logger.info(f"{log_prefix}Exporting {role.value} with predicate {predicate.as_dict()}")
                    result = await self._orchestrator.export(predicate, role)
                    location = self._sink.save(result)
                    self._notifier.notify(f"Exported {result.row_count} record(s) to {location}", "success")
                    return True
                except ExportError as e:
                    logger.warning(f"{log_prefix}Export failed: {e}")
                    self._notifier.notify(e.user_message, "error")
                except LibraryLoadError as e:
                    logger.warning(f"{log_prefix}Spreadsheet writer unavailable: {e}")
                    self._notifier.notify(WRITER_UNAVAILABLE_TEXT, "error")
                except Exception as e:
                    logger.error(f"{log_prefix}Unexpected export failure: {e}", exc_info=True)
                    self._notifier.notify(EXPORT_FAILED_TEXT, "error")
                finally:
                    surface.set_busy(row, col, False)
        except ExportInProgress:
            return False
        return False
