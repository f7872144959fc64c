import asyncio
import io
import logging
import numbers
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from tender_chat.core.config import settings
from tender_chat.core.loader import ResourceLoader
from tender_chat.tables.markdown import first_table

logger = logging.getLogger(__name__)

# --- Styling / layout constants ---
HEADER_FILL_COLOR = "4472C4"
HEADER_FONT_COLOR = "FFFFFF"
MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50
GENERIC_SHEET_NAME = "Sheet1"


# --- Filenames ---
def file_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with ':' and '.' replaced by '-' (filesystem safe)."""
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


def tender_export_filename(cell_type: str, now: Optional[datetime] = None) -> str:
    return f"Tender_Status_{cell_type}_{file_timestamp(now)}.xlsx"


def query_results_filename(now: Optional[datetime] = None) -> str:
    return f"CGMSCL_Query_Results_{file_timestamp(now)}.xlsx"


# --- Cell values ---
def _cell_value(value: Any) -> Any:
    """Numbers stay numeric, None stays blank, everything else becomes text."""
    if value is None:
        return None
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        return value
    return str(value)


def _save(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _auto_width(worksheet, columns: int) -> None:
    for index in range(1, columns + 1):
        letter = get_column_letter(index)
        longest = max(
            (len(str(cell.value)) for cell in worksheet[letter] if cell.value is not None),
            default=0,
        )
        worksheet.column_dimensions[letter].width = min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)


# --- Generic workbooks (rows carried by a chat message) ---
def tabulate_rows(rows: Sequence[Any], headers: Optional[Sequence[str]] = None) -> Tuple[List[str], List[List[Any]]]:
    """Turn records or arrays into (headers, value rows).

    Array rows are always data; headers come from ``headers`` (extended with
    ``Column N`` names when rows are wider) or are generated.
    """
    rows = list(rows or [])
    if not rows:
        return list(headers or []), []

    if all(isinstance(row, dict) for row in rows):
        columns = list(headers) if headers else list(rows[0].keys())
        for row in rows[1:]:
            columns.extend(key for key in row.keys() if key not in columns)
        return columns, [[row.get(name) for name in columns] for row in rows]

    arrays = [list(row) if isinstance(row, (list, tuple)) else [row] for row in rows]
    width = max(len(row) for row in arrays)
    columns = list(headers or [])
    columns += [f"Column {index}" for index in range(len(columns) + 1, width + 1)]
    return columns, [row + [None] * (len(columns) - len(row)) for row in arrays]


def build_workbook(rows: Sequence[Any], headers: Optional[Sequence[str]] = None) -> bytes:
    columns, values = tabulate_rows(rows, headers)
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = GENERIC_SHEET_NAME
    worksheet.append(columns)
    for row in values:
        worksheet.append([_cell_value(value) for value in row])
    _auto_width(worksheet, len(columns))
    logger.debug(f"[Spreadsheet] Built generic workbook: {len(values)} rows x {len(columns)} columns")
    return _save(workbook)


def build_message_workbook(
    rows: Optional[Sequence[Any]],
    columns: Optional[Sequence[str]] = None,
    text: Optional[str] = None,
) -> Tuple[bytes, int]:
    """Workbook for a chat message: its data rows, else a table in its text. Returns (content, data row count)."""
    if rows:
        return build_workbook(rows, columns), len(rows)
    table = first_table(text or "")
    if table is not None:
        return build_workbook(table.rows, table.headers), len(table.rows)
    logger.info("[Spreadsheet] No table in response text, exporting the text itself.")
    return build_workbook([[text or ""]], ["Response"]), 1


# --- Template workbooks (tender status exports) ---
def write_template_workbook(
    template: bytes,
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    sheet_name: Optional[str] = None,
    header_row: Optional[int] = None,
    data_start_row: Optional[int] = None,
) -> bytes:
    """Fill the template: styled header row, then one row per record.

    Borders and number formats already set on header cells survive the
    header restyling; data cells keep whatever style the template gives them.
    """
    header_row = header_row or settings.XLSX_HEADER_ROW
    data_start_row = data_start_row or settings.XLSX_DATA_START_ROW
    sheet_name = sheet_name if sheet_name is not None else settings.XLSX_SHEET_NAME

    workbook = load_workbook(io.BytesIO(template))
    if sheet_name and sheet_name in workbook.sheetnames:
        worksheet = workbook[sheet_name]
    else:
        if sheet_name:
            logger.warning(f"[Spreadsheet] Sheet '{sheet_name}' not in template, using '{workbook.active.title}'.")
        worksheet = workbook.active

    header_fill = PatternFill(fill_type="solid", start_color=HEADER_FILL_COLOR, end_color=HEADER_FILL_COLOR)
    header_font = Font(bold=True, color=HEADER_FONT_COLOR)
    header_alignment = Alignment(horizontal="center", vertical="center")
    for index, header in enumerate(headers, start=1):
        cell = worksheet.cell(row=header_row, column=index)
        cell.value = header
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment

    # Clear stale values left in the template; cell styles stay
    for stale_row in worksheet.iter_rows(min_row=data_start_row, max_row=worksheet.max_row):
        for cell in stale_row:
            cell.value = None

    for offset, row in enumerate(rows):
        for index, value in enumerate(row, start=1):
            worksheet.cell(row=data_start_row + offset, column=index).value = _cell_value(value)

    logger.debug(f"[Spreadsheet] Filled template sheet '{worksheet.title}' with {len(rows)} rows.")
    return _save(workbook)


class TemplateStore:
    """Fetches the export template once and keeps its bytes.

    Exposed through a ResourceLoader so concurrent exports share one fetch.
    """

    def __init__(self, location: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.location = location or settings.XLSX_TEMPLATE_URL
        self._http_client = http_client
        self.content: Optional[bytes] = None
        self.loader: ResourceLoader[bytes] = ResourceLoader("xlsx-template", probe=self.probe, load=self.load)

    def probe(self) -> Optional[bytes]:
        return self.content

    async def load(self) -> None:
        if self.location.startswith(("http://", "https://")):
            if self._http_client is None:
                async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                    content = await self._fetch(client)
            else:
                content = await self._fetch(self._http_client)
        else:
            content = await asyncio.to_thread(Path(self.location).read_bytes)
        # Reject anything openpyxl cannot open before caching it
        load_workbook(io.BytesIO(content))
        self.content = content
        logger.info(f"[TemplateStore] Loaded template from {self.location} ({len(content)} bytes).")

    async def _fetch(self, client: httpx.AsyncClient) -> bytes:
        response = await client.get(self.location)
        response.raise_for_status()
        return response.content

    async def get(self) -> bytes:
        return await self.loader.acquire()


class SpreadsheetWriter:
    """Writes tender exports into the template workbook."""

    def __init__(self, templates: TemplateStore):
        self.templates = templates

    async def write(self, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> bytes:
        template = await self.templates.get()
        return write_template_workbook(template, headers, rows)
