import pytest

from tender_chat.export.query_builder import build_export_request, compile_sql
from tender_chat.export.schema_definitions import EXPORT_COLUMN_LABELS, EXPORT_SOURCE_COLUMNS
from tender_chat.schemas.export import ClauseOp, CompoundClause, FilterClause
from tender_chat.schemas.table import ColumnRole, FilterPredicate


def flat(sql):
    return " ".join(sql.split()).lower()


def test_fixed_column_projection():
    """Test the export projection has 50 unique columns."""
    assert len(EXPORT_SOURCE_COLUMNS) == 50
    assert len(set(EXPORT_SOURCE_COLUMNS)) == 50
    assert len(EXPORT_COLUMN_LABELS) == 50


def test_base_fragments_always_present():
    """Test domain filters are present even without a predicate."""
    request = build_export_request(FilterPredicate(), ColumnRole.GENERIC_METRIC)

    assert request.base_fragments == [
        FilterClause(column="item_type", op=ClauseOp.EQ, value="Drugs"),
        FilterClause(column="indent_qty", op=ClauseOp.IS_NOT_NULL),
    ]
    assert request.bespoke_where_fragments == []


def test_new_items_special_case():
    """Test 'New Items' maps to exactly one status-equality fragment."""
    request = build_export_request(FilterPredicate(tenderProgress="New Items"), ColumnRole.TOTAL_ITEMS)

    assert request.bespoke_where_fragments == [
        FilterClause(column="tender_status", op=ClauseOp.EQ, value="To Be Tendered"),
    ]
    sql = flat(compile_sql(request))
    assert "tender_status_report.tender_status = 'to be tendered'" in sql
    assert "bid_found" not in sql.split("where", 1)[1]


def test_price_opened_bid_not_found_special_case():
    """Test the compound status plus three falsy bid-found fragments."""
    request = build_export_request(
        FilterPredicate(tenderProgress="Price Opened Bid Not Found"), ColumnRole.GENERIC_METRIC
    )

    [fragment] = request.bespoke_where_fragments
    assert isinstance(fragment, CompoundClause)
    assert fragment.clauses[0] == FilterClause(column="tender_status", op=ClauseOp.EQ, value="Price Opened")
    assert [(c.column, c.op) for c in fragment.clauses[1:]] == [
        ("is_cover_a_bid_found", ClauseOp.FALSY),
        ("is_cover_b_bid_found", ClauseOp.FALSY),
        ("is_price_bid_found", ClauseOp.FALSY),
    ]
    where = flat(compile_sql(request)).split("where", 1)[1]
    assert "tender_status_report.tender_status = 'price opened'" in where
    for name in ("is_cover_a_bid_found", "is_cover_b_bid_found", "is_price_bid_found"):
        assert f"coalesce(tender_status_report.{name}, 0) = 0" in where


def test_other_progress_values_filter_remarks_column():
    """Test ordinary progress values compare against the remarks column."""
    request = build_export_request(FilterPredicate(tenderProgress="Under Evaluation"), ColumnRole.EDL)

    assert request.bespoke_where_fragments[0] == FilterClause(
        column="tender_progress_remarks", op=ClauseOp.EQ, value="Under Evaluation"
    )


@pytest.mark.parametrize("role, expected", [
    (ColumnRole.EDL, "tender_status_report.edl_flag = 'y'"),
    (ColumnRole.NON_EDL, "coalesce(tender_status_report.edl_flag, 'n') != 'y'"),
    (ColumnRole.ABC_C, "tender_status_report.abc_category = 'c'"),
    (ColumnRole.TOTAL_ABC, "tender_status_report.abc_category in ('a', 'b', 'c')"),
])
def test_role_fragments(role, expected):
    """Test EDL and ABC fragments come from the clicked cell's role."""
    request = build_export_request(FilterPredicate(rcStatus="Active"), role)

    assert expected in flat(compile_sql(request))


def test_role_fragments_absent_for_other_roles():
    """Test no EDL or ABC filter for unrelated metric roles."""
    sql = flat(compile_sql(build_export_request(FilterPredicate(rcStatus="Active"), ColumnRole.TOTAL_ITEMS)))
    where = sql.split("where", 1)[1]

    assert "edl_flag" not in where
    assert "abc_category" not in where
    assert "tender_status_report.rc_status = 'active'" in where


def test_values_are_escaped():
    """Test quotes in filter values are escaped by the dialect."""
    sql = compile_sql(build_export_request(FilterPredicate(statusAction="Supplier's reply"), ColumnRole.EDL))

    assert "'Supplier''s reply'" in sql


def test_percent_in_values_kept_verbatim():
    """Test '%' in a filter value reaches the SQL text undoubled."""
    sql = compile_sql(build_export_request(FilterPredicate(rcStatus="50% Done"), ColumnRole.EDL))

    assert "'50% Done'" in sql
    assert "%%" not in sql


def test_select_list_in_fixed_order():
    """Test every export column is selected, in order."""
    sql = flat(compile_sql(build_export_request(FilterPredicate(), ColumnRole.EDL)))
    select_list = sql.split(" from ", 1)[0]
    positions = [select_list.index(f"tender_status_report.{name}") for name in ("item_code", "rc_status", "last_updated")]

    assert positions == sorted(positions)
    assert "from tender_status_report" in sql
