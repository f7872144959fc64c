import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from tender_chat.schemas.table import AnnotatedTable, CanonicalTable

# Chat Models

class ChatRequest(BaseModel):
    """Request schema for the chat endpoint."""
    query: str = Field(..., min_length=1, description="The user's question")

class VisualizationDescriptor(BaseModel):
    """Declarative chart request supplied by the backend next to a result table."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    chart_type: str = Field(..., alias="chartType", description="bar, line or pie")
    title: str = Field(default="", description="Chart title")
    x_axis: str = Field(..., alias="xAxis", description="Column used for categories")
    y_axis: List[str] = Field(default_factory=list, alias="yAxis", description="Value columns; pie uses the first resolved one")
    mode: Optional[str] = Field(default=None, description="stacked or grouped")

# --- Renderer-agnostic chart data ---
class PieSlice(BaseModel):
    name: str
    value: float

class ChartSeries(BaseModel):
    name: str
    values: List[float] = Field(default_factory=list, description="One value per category")
    stacked: bool = False
    points: Optional[List[PieSlice]] = Field(default=None, description="Pie only: (category, value) pairs")

class ChartSpec(BaseModel):
    chart_type: str
    title: str
    x_label: str
    categories: List[str]
    series: List[ChartSeries]

class RenderedChart(BaseModel):
    spec: ChartSpec
    image_url: Optional[str] = Field(default=None, description="URL of the rendered image, when the engine rendered it")

# Response Models

class AssistantMessage(BaseModel):
    """Assistant turn assembled from the backend chat response."""
    role: str = "assistant"
    text: str
    sql_query: Optional[str] = None
    data_rows: Optional[List[Any]] = None
    data_columns: Optional[List[str]] = None
    visualization: Optional[VisualizationDescriptor] = None
    excel_download: bool = False
    raw_data: Optional[Any] = Field(default=None, exclude=True)
    is_error: bool = Field(default=False, exclude=True, description="True when the text is the fallback error message")
    timestamp: datetime = Field(default_factory=datetime.now)

class ChatData(BaseModel):
    """Everything the transcript needs to render one assistant message."""
    text: str
    sql_query: Optional[str] = None
    table: Optional[CanonicalTable] = None
    chart: Optional[RenderedChart] = None
    annotated_tables: List[AnnotatedTable] = Field(default_factory=list)
    excel_download: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)

class Error(BaseModel):
    """Error details."""
    code: str = Field(..., description="Error code", examples=["CHAT_BACKEND_ERROR", "EXPORT_ERROR"])
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")

class ChatResponse(BaseModel):
    """Response schema for the chat endpoint."""
    request_id: Optional[uuid.UUID] = Field(None, description="Unique identifier for the request-response cycle.")
    status: Literal["success", "error"] = "success"
    data: Optional[ChatData] = None
    error: Optional[Error] = None
    timestamp: datetime = Field(default_factory=datetime.now, description="Response timestamp")
