import json
import os
from typing import Annotated, List, Optional, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

class Settings(BaseSettings):
    # API settings
    PROJECT_NAME: str = "Tender Status Chat API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]  # JSON list or comma separated

    # Upstream endpoints (all required, see check_required_settings)
    CHAT_API_URL: str = ""  # Backend chat endpoint, receives POST {"query": ...}
    API_BASE_URL: str = ""  # Alternate API base used for filtered exports
    EXPORT_API_PATH: str = "/query"  # Appended to API_BASE_URL, receives POST {"direct_sql": ...}
    XLSX_TEMPLATE_URL: str = ""  # http(s) URL or filesystem path of the tender template workbook
    HTTP_TIMEOUT_SECONDS: float = Field(default=30.0, description="Timeout for chat and export requests.")

    # Library loading (polling / timeout for chart engine and spreadsheet template)
    LIBRARY_POLL_INTERVAL_SECONDS: float = Field(default=0.1, description="Delay between readiness probes.")
    LIBRARY_POLL_MAX_ATTEMPTS: int = Field(default=100, description="Hard cap on readiness probes.")
    LIBRARY_LOAD_TIMEOUT_SECONDS: float = Field(default=10.0, description="Absolute timeout while waiting for a library.")

    # Spreadsheet template layout
    XLSX_SHEET_NAME: Optional[str] = None  # None = first sheet of the template
    XLSX_HEADER_ROW: int = 1
    XLSX_DATA_START_ROW: int = 2

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Chart generation
    CHART_DIR: str = "static/charts"
    CHART_URL_BASE: str = "/static/charts"

    # Exports saved by the binding surface path
    EXPORT_DIR: str = "exports"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = 'ignore'

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        if isinstance(v, str):
            return json.loads(v)
        if isinstance(v, list):
            return v
        raise ValueError(v)

    @model_validator(mode='after')
    def check_required_settings(self):
        # Upstream locations have no sensible defaults; fail loudly at startup
        if not self.CHAT_API_URL:
            raise ValueError("CHAT_API_URL environment variable is missing or empty.")
        if not self.API_BASE_URL:
            raise ValueError("API_BASE_URL environment variable is missing or empty.")
        if not self.XLSX_TEMPLATE_URL:
            raise ValueError("XLSX_TEMPLATE_URL environment variable is missing or empty.")
        if self.XLSX_DATA_START_ROW <= self.XLSX_HEADER_ROW:
            raise ValueError("XLSX_DATA_START_ROW must be greater than XLSX_HEADER_ROW.")
        return self

    @property
    def export_api_url(self) -> str:
        return f"{self.API_BASE_URL.rstrip('/')}{self.EXPORT_API_PATH}"

# Create global settings object
settings = Settings()

# Ensure output directories exist
os.makedirs(settings.CHART_DIR, exist_ok=True)
os.makedirs(settings.EXPORT_DIR, exist_ok=True)
