import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Dict

from tender_chat.core.exceptions import ExportInProgress

logger = logging.getLogger(__name__)


class CellState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"


class CellExportGuard:
    """Per-cell export state machine: Idle -> Requesting -> Idle.

    A cell already Requesting rejects further clicks with ExportInProgress.
    The cell always returns to Idle when the export ends, successfully or not.
    """

    def __init__(self):
        self._states: Dict[str, CellState] = {}

    def state(self, cell_id: str) -> CellState:
        return self._states.get(cell_id, CellState.IDLE)

    def is_busy(self, cell_id: str) -> bool:
        return self.state(cell_id) is CellState.REQUESTING

    @asynccontextmanager
    async def claim(self, cell_id: str) -> AsyncIterator[None]:
        if self.is_busy(cell_id):
            logger.info(f"[CellExportGuard] Ignoring click on busy cell '{cell_id}'.")
            raise ExportInProgress(f"Export already running for cell '{cell_id}'")
        self._states[cell_id] = CellState.REQUESTING
        try:
            yield
        finally:
            self._states.pop(cell_id, None)
