import logging
from typing import List

import sqlparse
from sqlalchemy import and_, column, func, literal, select, table
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.elements import ColumnElement

from tender_chat.export import schema_definitions as schema
from tender_chat.schemas.export import (
    ClauseOp,
    CompoundClause,
    ExportRequest,
    FilterClause,
    WhereFragment,
)
from tender_chat.schemas.table import ColumnRole, FilterPredicate

logger = logging.getLogger(__name__)

ABC_LETTERS = ["A", "B", "C"]

# Lightweight table construct; only used to compile SELECT statements
tender_status_report = table(
    schema.EXPORT_TABLE["name"],
    *[column(name) for name in schema.EXPORT_SOURCE_COLUMNS],
)


def base_fragments() -> List[WhereFragment]:
    """Filters every export carries: drug items with an indent quantity."""
    return [
        FilterClause(column="item_type", op=ClauseOp.EQ, value=schema.DOMAIN_ITEM_TYPE),
        FilterClause(column=schema.QUANTITY_COLUMN, op=ClauseOp.IS_NOT_NULL),
    ]


def _tender_progress_fragment(value: str) -> WhereFragment:
    if value == schema.NEW_ITEMS:
        return FilterClause(column="tender_status", op=ClauseOp.EQ, value=schema.NEW_ITEMS_TENDER_STATUS)
    if value == schema.PRICE_OPENED_BID_NOT_FOUND:
        return CompoundClause(
            name=schema.PRICE_OPENED_BID_NOT_FOUND,
            clauses=[
                FilterClause(column="tender_status", op=ClauseOp.EQ, value=schema.PRICE_OPENED_TENDER_STATUS),
                *[FilterClause(column=name, op=ClauseOp.FALSY) for name in schema.BID_FOUND_COLUMNS],
            ],
        )
    return FilterClause(column=schema.FILTER_COLUMNS["tenderProgress"], op=ClauseOp.EQ, value=value)


def predicate_fragments(predicate: FilterPredicate) -> List[WhereFragment]:
    """One fragment per non-empty row filter value."""
    fragments: List[WhereFragment] = []
    for key, value in predicate.filter_values().items():
        value = value.strip()
        if key == "tenderProgress":
            fragments.append(_tender_progress_fragment(value))
        else:
            fragments.append(FilterClause(column=schema.FILTER_COLUMNS[key], op=ClauseOp.EQ, value=value))
    return fragments


def role_fragments(cell_role: ColumnRole) -> List[WhereFragment]:
    """Fragments implied by the clicked cell's column role."""
    if cell_role is ColumnRole.EDL:
        return [FilterClause(column="edl_flag", op=ClauseOp.EQ, value="Y")]
    if cell_role is ColumnRole.NON_EDL:
        return [FilterClause(column="edl_flag", op=ClauseOp.NOT_EQ_OR_NULL, value="Y")]
    if cell_role.abc_letter:
        return [FilterClause(column="abc_category", op=ClauseOp.EQ, value=cell_role.abc_letter)]
    if cell_role is ColumnRole.TOTAL_ABC:
        return [FilterClause(column="abc_category", op=ClauseOp.IN, value=list(ABC_LETTERS))]
    return []


def build_export_request(predicate: FilterPredicate, cell_role: ColumnRole) -> ExportRequest:
    return ExportRequest(
        predicate=predicate,
        cell_role=cell_role,
        base_fragments=base_fragments(),
        bespoke_where_fragments=[*predicate_fragments(predicate), *role_fragments(cell_role)],
    )


# --- Compilation ---
def _compile_clause(clause: FilterClause) -> ColumnElement:
    target = tender_status_report.c[clause.column]
    if clause.op is ClauseOp.EQ:
        return target == clause.value
    if clause.op is ClauseOp.NOT_EQ_OR_NULL:
        # NULL counts as "not equal"
        return func.coalesce(target, "N") != clause.value
    if clause.op is ClauseOp.IS_NOT_NULL:
        return target.isnot(None)
    if clause.op is ClauseOp.IN:
        return target.in_(list(clause.value or []))
    if clause.op is ClauseOp.FALSY:
        return func.coalesce(target, literal(0)) == 0
    raise ValueError(f"Unsupported clause operator: {clause.op}")


def _compile_fragment(fragment: WhereFragment) -> ColumnElement:
    if isinstance(fragment, CompoundClause):
        return and_(*[_compile_clause(clause) for clause in fragment.clauses])
    return _compile_clause(fragment)


def build_statement(request: ExportRequest):
    """SQLAlchemy SELECT of the 50 export columns filtered by the request's fragments."""
    return (
        select(*[tender_status_report.c[name] for name in schema.EXPORT_SOURCE_COLUMNS])
        .where(and_(*[_compile_fragment(fragment) for fragment in request.fragments]))
        .order_by(tender_status_report.c.item_code)
    )


def compile_sql(request: ExportRequest) -> str:
    """Render the export statement as PostgreSQL text.

    Values are rendered by the dialect's literal processors (quote escaping
    included), never concatenated into the SQL by hand. The named paramstyle
    keeps '%' in literals as-is; the text is sent verbatim, not to a DBAPI.
    """
    statement = build_statement(request)
    compiled = statement.compile(dialect=postgresql.dialect(paramstyle="named"), compile_kwargs={"literal_binds": True})
    sql = sqlparse.format(str(compiled), reindent=True, keyword_case="upper")
    logger.debug(f"[QueryBuilder] Export SQL for {request.cell_role.value}:\n{sql}")
    return sql
