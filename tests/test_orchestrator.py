import io
import json

import httpx
import pytest
from openpyxl import Workbook, load_workbook

from tender_chat.core.exceptions import ExportNetworkError, ExportServerError, NoMatchingRows
from tender_chat.export.orchestrator import ExportOrchestrator, project_rows
from tender_chat.export.schema_definitions import EXPORT_COLUMN_LABELS, EXPORT_SOURCE_COLUMNS
from tender_chat.export.spreadsheet import SpreadsheetWriter, TemplateStore
from tender_chat.rendering.normalizer import normalize
from tender_chat.schemas.table import ColumnRole, FilterPredicate

EXPORT_URL = "http://api.test/query"


@pytest.fixture
def template_path(tmp_path):
    path = tmp_path / "template.xlsx"
    workbook = Workbook()
    workbook.save(path)
    return path


def make_orchestrator(client, template_path):
    return ExportOrchestrator(client, SpreadsheetWriter(TemplateStore(location=str(template_path))), export_url=EXPORT_URL)


@pytest.mark.asyncio
async def test_export_success(template_path):
    """Test SQL is posted, rows projected onto the fixed columns and written."""
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"rows": [
            {"item_code": "D001", "Item Name": "Paracetamol", "RC_STATUS": "Active", "unknown": 1},
            {"item_code": "D002", "Item Name": "ORS", "RC_STATUS": "Active", "unknown": 2},
        ]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        orchestrator = make_orchestrator(client, template_path)
        result = await orchestrator.export(FilterPredicate(rcStatus="Active", edlFlag=True), ColumnRole.EDL)

    sql = bodies[0]["direct_sql"]
    assert "'Active'" in sql and "'Y'" in sql
    assert result.row_count == 2
    assert result.filename.startswith("Tender_Status_EDL_") and result.filename.endswith(".xlsx")

    sheet = load_workbook(io.BytesIO(result.content)).active
    assert [cell.value for cell in sheet[1]] == EXPORT_COLUMN_LABELS
    assert sheet["A2"].value == "D001"
    assert sheet["B3"].value == "ORS"
    assert sheet.cell(row=2, column=EXPORT_SOURCE_COLUMNS.index("rc_status") + 1).value == "Active"


@pytest.mark.asyncio
async def test_array_rows_use_fallback_columns(template_path):
    """Test array-of-arrays responses map by the fixed column order."""
    def handler(request):
        return httpx.Response(200, json=[["D001", "Paracetamol", "500mg"]])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await make_orchestrator(client, template_path).export(FilterPredicate(), ColumnRole.TOTAL_ITEMS)

    sheet = load_workbook(io.BytesIO(result.content)).active
    assert [sheet["A2"].value, sheet["B2"].value, sheet["C2"].value] == ["D001", "Paracetamol", "500mg"]
    assert result.filename.startswith("Tender_Status_TotalItems_")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[], {"rows": []}, {"message": "nothing"}])
async def test_no_rows(template_path, body):
    """Test empty or table-less responses raise NoMatchingRows."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))) as client:
        with pytest.raises(NoMatchingRows) as excinfo:
            await make_orchestrator(client, template_path).export(FilterPredicate(), ColumnRole.EDL)

    assert excinfo.value.user_message == "No matching records found for this selection."


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json={"error": "syntax error at or near"}),
])
async def test_server_errors(template_path, response):
    """Test error statuses, invalid JSON and error bodies raise ExportServerError."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response)) as client:
        with pytest.raises(ExportServerError):
            await make_orchestrator(client, template_path).export(FilterPredicate(), ColumnRole.EDL)


@pytest.mark.asyncio
async def test_network_error(template_path):
    """Test transport failures raise ExportNetworkError."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ExportNetworkError):
            await make_orchestrator(client, template_path).export(FilterPredicate(), ColumnRole.EDL)


def test_project_rows_missing_columns_blank():
    """Test absent export columns are left blank."""
    rows = project_rows(normalize([{"Item Code": "D001"}]))

    assert len(rows[0]) == 50
    assert rows[0][0] == "D001"
    assert rows[0][1:] == [None] * 49
