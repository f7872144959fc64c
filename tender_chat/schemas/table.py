from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

Scalar = Union[str, int, float, bool, None]

class CanonicalTable(BaseModel):
    """Normalized table: ordered unique columns, rows keyed by every column."""
    model_config = ConfigDict(frozen=True)

    columns: List[str] = Field(..., description="Ordered, unique column names")
    rows: List[Dict[str, Scalar]] = Field(default_factory=list, description="Rows keyed by every column name")

    @model_validator(mode='after')
    def check_row_keys(self):
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate column names: {self.columns}")
        expected = set(self.columns)
        for index, row in enumerate(self.rows):
            if set(row.keys()) != expected:
                raise ValueError(f"Row {index} keys {sorted(row.keys())} do not match columns {self.columns}")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.rows


class ColumnRole(str, Enum):
    """Semantic role of a results-table header."""
    RC_STATUS = "filter:rcStatus"
    TENDER_PROGRESS = "filter:tenderProgress"
    STATUS_ACTION = "filter:statusAction"
    EDL = "metric:edl"
    NON_EDL = "metric:nonEdl"
    TOTAL_ITEMS = "metric:totalItems"
    ABC_A = "metric:abcCategory(A)"
    ABC_B = "metric:abcCategory(B)"
    ABC_C = "metric:abcCategory(C)"
    TOTAL_ABC = "metric:totalAbc"
    GENERIC_METRIC = "metric:generic"
    UNCLASSIFIED = "unclassified"

    @property
    def is_filter(self) -> bool:
        return self.value.startswith("filter:")

    @property
    def is_metric(self) -> bool:
        return self.value.startswith("metric:")

    @property
    def filter_key(self) -> Optional[str]:
        """Predicate key for filter roles (``rcStatus`` etc.), else None."""
        return self.value.split(":", 1)[1] if self.is_filter else None

    @property
    def abc_letter(self) -> Optional[str]:
        return _ABC_LETTERS.get(self)

    @property
    def file_label(self) -> str:
        """Cell type used in export filenames."""
        return _FILE_LABELS.get(self, "Cell")

    @classmethod
    def for_abc_letter(cls, letter: str) -> "ColumnRole":
        return {"A": cls.ABC_A, "B": cls.ABC_B, "C": cls.ABC_C}[letter.upper()]


_ABC_LETTERS = {ColumnRole.ABC_A: "A", ColumnRole.ABC_B: "B", ColumnRole.ABC_C: "C"}

_FILE_LABELS = {
    ColumnRole.EDL: "EDL",
    ColumnRole.NON_EDL: "NonEDL",
    ColumnRole.TOTAL_ITEMS: "TotalItems",
    ColumnRole.ABC_A: "A_Category",
    ColumnRole.ABC_B: "B_Category",
    ColumnRole.ABC_C: "C_Category",
    ColumnRole.TOTAL_ABC: "TotalABC",
    ColumnRole.GENERIC_METRIC: "Value",
}


class FilterPredicate(BaseModel):
    """Filter values captured from one table row plus flags derived from the clicked cell."""
    model_config = ConfigDict(populate_by_name=True)

    rc_status: Optional[str] = Field(default=None, alias="rcStatus")
    tender_progress: Optional[str] = Field(default=None, alias="tenderProgress")
    status_action: Optional[str] = Field(default=None, alias="statusAction")
    abc_category: Optional[str] = Field(default=None, alias="abcCategory", description="A, B, C or ABC for the combined total")
    edl_flag: Optional[bool] = Field(default=None, alias="edlFlag")

    def filter_values(self) -> Dict[str, str]:
        """Non-empty row filter values keyed by their camelCase predicate key."""
        values = {
            "rcStatus": self.rc_status,
            "tenderProgress": self.tender_progress,
            "statusAction": self.status_action,
        }
        return {key: value for key, value in values.items() if value is not None and value.strip()}

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Annotated table model (pure output of the annotation stage) ---
class AnnotatedCell(BaseModel):
    column: str
    text: str
    role: ColumnRole
    clickable: bool = False

class AnnotatedRow(BaseModel):
    index: int = Field(..., description="0-based data row index in the source table")
    cells: List[AnnotatedCell]
    predicate: FilterPredicate = Field(default_factory=FilterPredicate, description="Row filter values (no cell-derived flags)")
    is_total: bool = False

class AnnotatedTable(BaseModel):
    headers: List[str]
    roles: Dict[str, ColumnRole]
    rows: List[AnnotatedRow] = Field(default_factory=list)
    eligible: bool = Field(default=False, description="True when at least one header has a filter or metric role")

class MarkdownTable(BaseModel):
    """A pipe table lifted out of assistant text."""
    headers: List[str]
    rows: List[List[str]] = Field(default_factory=list)
