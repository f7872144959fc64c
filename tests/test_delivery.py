import logging

import pytest

from tender_chat.export.delivery import DirectoryDownloadSink, LoggingNotifier
from tender_chat.schemas.export import ExportResult
from tender_chat.schemas.table import ColumnRole
from tender_chat.tables.annotator import GridSurface, TableAnnotator
from tender_chat.tables.markdown import first_table

REPLY = """| RC Status | Status/Action | Total Items |
|---|---|---|
| Active | With Supplier | 7 |
"""


class FakeOrchestrator:
    def __init__(self):
        self.calls = []

    async def export(self, predicate, cell_role):
        self.calls.append((predicate, cell_role))
        return ExportResult(filename="Tender_Status_TotalItems_x.xlsx", content=b"PK\x03\x04", row_count=7)


def test_sink_writes_file(tmp_path):
    """Test the sink saves the workbook under its filename."""
    sink = DirectoryDownloadSink(str(tmp_path / "downloads"))

    location = sink.save(ExportResult(filename="a.xlsx", content=b"data", row_count=1))

    assert (tmp_path / "downloads" / "a.xlsx").read_bytes() == b"data"
    assert location.endswith("a.xlsx")


def test_notifier_records_and_logs(caplog):
    """Test notifications are kept in order and logged at their level."""
    notifier = LoggingNotifier()

    with caplog.at_level(logging.INFO):
        notifier.notify("done", "success")
        notifier.notify("failed", "error")

    assert notifier.messages == [("success", "done"), ("error", "failed")]
    assert any(record.levelno == logging.ERROR and "failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_markdown_table_click_to_file(tmp_path):
    """Test a reply table bound on a grid surface exports into the download directory."""
    orchestrator = FakeOrchestrator()
    notifier = LoggingNotifier()
    annotator = TableAnnotator(orchestrator, DirectoryDownloadSink(str(tmp_path)), notifier)
    surface = GridSurface.from_markdown("reply-1", first_table(REPLY))

    assert annotator.annotate(surface) == 1
    assert await surface.click(0, 2)

    predicate, role = orchestrator.calls[0]
    assert role is ColumnRole.TOTAL_ITEMS
    assert predicate.as_dict() == {"rcStatus": "Active", "statusAction": "With Supplier"}
    assert (tmp_path / "Tender_Status_TotalItems_x.xlsx").exists()
    assert notifier.messages[-1][0] == "success"
