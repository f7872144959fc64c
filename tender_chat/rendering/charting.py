import logging
import math
import numbers
from typing import Any, List, Optional

from tender_chat.core.exceptions import MissingAxisColumn, UnsupportedChartType, VisualizationError
from tender_chat.schemas.chat import ChartSeries, ChartSpec, PieSlice, VisualizationDescriptor
from tender_chat.schemas.table import CanonicalTable

logger = logging.getLogger(__name__)

SUPPORTED_CHART_TYPES = ("bar", "line", "pie")


def to_number(value: Any) -> float:
    """Coerce a cell to a chart value. Anything non-numeric becomes 0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_label(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build(descriptor: Optional[VisualizationDescriptor], table: Optional[CanonicalTable]) -> Optional[ChartSpec]:
    """Build a renderer-agnostic ChartSpec, or None when the chart cannot be drawn.

    Failures (missing axis columns, unsupported chart type) are logged and
    swallowed; a bad chart must never interrupt the transcript.
    """
    if descriptor is None or table is None:
        logger.warning("[VisualizationConfigBuilder] Missing visualization or data.")
        return None
    try:
        return build_strict(descriptor, table)
    except VisualizationError as e:
        logger.warning(f"[VisualizationConfigBuilder] Chart '{descriptor.title}' suppressed: {e}")
        return None


def build_strict(descriptor: VisualizationDescriptor, table: CanonicalTable) -> ChartSpec:
    chart_type = (descriptor.chart_type or "").strip().lower()

    if descriptor.x_axis not in table.columns:
        raise MissingAxisColumn(f"X-axis column '{descriptor.x_axis}' not found in {table.columns}")

    if chart_type not in SUPPORTED_CHART_TYPES:
        raise UnsupportedChartType(f"Unsupported chart type '{descriptor.chart_type}'. Allowed types: {list(SUPPORTED_CHART_TYPES)}")

    y_columns = [name for name in descriptor.y_axis if name in table.columns]
    missing = [name for name in descriptor.y_axis if name not in table.columns]
    if missing:
        logger.debug(f"[VisualizationConfigBuilder] Ignoring unresolved y-axis columns {missing}.")
    if not y_columns:
        raise MissingAxisColumn(f"None of the y-axis columns {descriptor.y_axis} found in {table.columns}")

    # One label per row keeps every series aligned with the categories
    categories = [to_label(row[descriptor.x_axis]) for row in table.rows]
    title = descriptor.title or "Chart"

    if chart_type == "pie":
        value_column = y_columns[0]
        values = [to_number(row[value_column]) for row in table.rows]
        points = [PieSlice(name=label, value=value) for label, value in zip(categories, values)]
        series = [ChartSeries(name=value_column, values=values, points=points)]
    else:
        stacked = chart_type == "bar" and (descriptor.mode or "").lower() == "stacked"
        series = [
            ChartSeries(
                name=column,
                values=[to_number(row[column]) for row in table.rows],
                stacked=stacked,
            )
            for column in y_columns
        ]

    logger.debug(f"[VisualizationConfigBuilder] Built {chart_type} chart '{title}' with {len(series)} series over {len(categories)} categories.")
    return ChartSpec(
        chart_type=chart_type,
        title=title,
        x_label=descriptor.x_axis,
        categories=categories,
        series=series,
    )
