import pytest

from tender_chat.core.exceptions import MissingAxisColumn, UnsupportedChartType
from tender_chat.rendering.charting import build, build_strict, to_label, to_number
from tender_chat.rendering.normalizer import normalize
from tender_chat.schemas.chat import VisualizationDescriptor

TABLE = normalize([
    {"status": "Active", "edl": 10, "non_edl": "4", "note": "x"},
    {"status": "Expired", "edl": None, "non_edl": "n/a", "note": "y"},
    {"status": None, "edl": 2.5, "non_edl": 1, "note": "z"},
])


def descriptor(**fields):
    data = {"chartType": "bar", "xAxis": "status", "yAxis": ["edl"], "title": "Status"}
    data.update(fields)
    return VisualizationDescriptor.model_validate(data)


@pytest.mark.parametrize("chart_type", ["bar", "line", "pie"])
def test_series_lengths_match_categories(chart_type):
    """Test every series has one value per row for all chart types."""
    spec = build(descriptor(chartType=chart_type, yAxis=["edl", "non_edl"]), TABLE)

    assert len(spec.categories) == len(TABLE.rows)
    for series in spec.series:
        assert len(series.values) == len(spec.categories)


@pytest.mark.parametrize("chart_type", ["bar", "line", "pie"])
def test_missing_x_axis_returns_none(chart_type):
    """Test an unresolved x-axis fails the build for any chart type."""
    assert build(descriptor(chartType=chart_type, xAxis="nope"), TABLE) is None


def test_non_numeric_values_become_zero():
    """Test null and non-numeric metric values coerce to 0 without dropping rows."""
    spec = build(descriptor(yAxis=["edl", "non_edl"]), TABLE)

    assert spec.series[0].values == [10.0, 0.0, 2.5]
    assert spec.series[1].values == [4.0, 0.0, 1.0]
    assert spec.categories == ["Active", "Expired", ""]


def test_unresolved_y_entries_ignored_in_order():
    """Test series order follows the resolved y-axis entries."""
    spec = build(descriptor(yAxis=["missing", "non_edl", "edl"]), TABLE)

    assert [series.name for series in spec.series] == ["non_edl", "edl"]


def test_all_y_unresolved_returns_none():
    """Test a chart with no resolvable value column is suppressed."""
    assert build(descriptor(yAxis=["missing"]), TABLE) is None


def test_pie_scenario():
    """Test pie data pairs category names with values."""
    table = normalize([{"cat": "X", "val": 10}, {"cat": "Y", "val": 20}])
    spec = build(descriptor(chartType="pie", xAxis="cat", yAxis=["val"]), table)

    assert len(spec.series) == 1
    assert [point.model_dump() for point in spec.series[0].points] == [
        {"name": "X", "value": 10},
        {"name": "Y", "value": 20},
    ]


def test_pie_uses_first_resolved_y_only():
    """Test pie ignores every y-axis entry after the first resolved one."""
    spec = build(descriptor(chartType="pie", yAxis=["missing", "non_edl", "edl"]), TABLE)

    assert len(spec.series) == 1
    assert spec.series[0].name == "non_edl"


def test_stacked_only_for_bar():
    """Test the stacked mode marks bar series but not line series."""
    bar = build(descriptor(yAxis=["edl", "non_edl"], mode="stacked"), TABLE)
    line = build(descriptor(chartType="line", yAxis=["edl", "non_edl"], mode="stacked"), TABLE)
    grouped = build(descriptor(yAxis=["edl", "non_edl"], mode="grouped"), TABLE)

    assert all(series.stacked for series in bar.series)
    assert not any(series.stacked for series in line.series)
    assert not any(series.stacked for series in grouped.series)


def test_strict_errors():
    """Test the strict builder raises the specific visualization errors."""
    with pytest.raises(MissingAxisColumn):
        build_strict(descriptor(xAxis="nope"), TABLE)
    with pytest.raises(UnsupportedChartType):
        build_strict(descriptor(chartType="radar"), TABLE)
    assert build(descriptor(chartType="radar"), TABLE) is None


def test_coercion_helpers():
    """Test numeric and label coercion."""
    assert to_number("12.5") == 12.5
    assert to_number(True) == 1
    assert to_number(float("inf")) == 0
    assert to_label(3.0) == "3"
    assert to_label(None) == ""
