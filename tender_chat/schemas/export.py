from enum import Enum
from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from tender_chat.schemas.table import ColumnRole, FilterPredicate

# --- Structured filter ---
class ClauseOp(str, Enum):
    EQ = "eq"
    NOT_EQ_OR_NULL = "not_eq_or_null"
    IS_NOT_NULL = "is_not_null"
    IN = "in"
    FALSY = "falsy"

class FilterClause(BaseModel):
    """One comparison on a source column."""
    kind: Literal["clause"] = "clause"
    column: str
    op: ClauseOp
    value: Optional[Union[str, int, List[str]]] = None

class CompoundClause(BaseModel):
    """All clauses must hold; used for named special cases."""
    kind: Literal["all_of"] = "all_of"
    name: str = Field(..., description="Special case this compound clause represents")
    clauses: List[FilterClause]

WhereFragment = Union[FilterClause, CompoundClause]

class ExportRequest(BaseModel):
    """A single cell-scoped export: resolved predicate, clicked cell role and the where-fragments built from them."""
    predicate: FilterPredicate
    cell_role: ColumnRole
    base_fragments: List[WhereFragment] = Field(default_factory=list)
    bespoke_where_fragments: List[WhereFragment] = Field(default_factory=list)

    @property
    def fragments(self) -> List[WhereFragment]:
        return [*self.base_fragments, *self.bespoke_where_fragments]

class ExportResult(BaseModel):
    filename: str
    content: bytes = Field(..., repr=False)
    row_count: int
    media_type: str = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# --- API request bodies ---
class CellExportRequest(BaseModel):
    """Body of POST /export: one click on an annotated table cell."""
    cell_id: str = Field(..., min_length=1, description="Stable identifier of the clicked cell")
    cell_role: ColumnRole
    predicate: FilterPredicate = Field(default_factory=FilterPredicate)

class RowsExportRequest(BaseModel):
    """Body of POST /export/rows: export what a message already carries."""
    rows: Optional[List[Any]] = None
    columns: Optional[List[str]] = None
    text: Optional[str] = None
