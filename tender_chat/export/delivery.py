import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tender_chat.core.config import settings
from tender_chat.schemas.export import ExportResult

logger = logging.getLogger(__name__)

_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "success": logging.INFO,
    "info": logging.INFO,
}


class DirectoryDownloadSink:
    """Saves export workbooks into a directory (EXPORT_DIR by default)."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or settings.EXPORT_DIR)
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, result: ExportResult) -> str:
        path = self.directory / result.filename
        path.write_bytes(result.content)
        logger.info(f"[DirectoryDownloadSink] Saved {result.filename} ({len(result.content)} bytes).")
        return str(path)


class LoggingNotifier:
    """User notifications recorded in order and mirrored to the log."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def notify(self, message: str, level: str = "info") -> None:
        self.messages.append((level, message))
        logger.log(_LEVELS.get(level, logging.INFO), f"[Notification:{level}] {message}")
