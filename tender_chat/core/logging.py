import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from tender_chat.core.config import settings

def setup_logging():
    """Configure logging for the application."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_format = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    # File handler
    file_handler = RotatingFileHandler(
        log_dir / "tender_chat_api.log",
        maxBytes=10485760,  # 10MB
        backupCount=5,
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(log_format)
    root_logger.addHandler(file_handler)

    # Lower the level of noisy libraries unless LOG_LEVEL is DEBUG
    default_external_level = logging.WARNING if log_level > logging.DEBUG else logging.INFO
    logging.getLogger("httpx").setLevel(default_external_level)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("matplotlib.font_manager").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    # --- Configure Uvicorn Loggers --- #
    # Uvicorn keeps its default handlers; only levels follow ours
    for uvicorn_logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.propagate = False
    # --- End Uvicorn Configuration --- #

    # --- Configure Application Loggers --- #
    logging.getLogger("tender_chat").setLevel(log_level)
    # Loader polling is chatty at DEBUG; keep it at INFO unless explicitly debugging
    loader_level = logging.INFO if log_level > logging.DEBUG else logging.DEBUG
    logging.getLogger("tender_chat.core.loader").setLevel(loader_level)
    # --- End Application Logger Configuration --- #

    return root_logger
