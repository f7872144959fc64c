import pytest

from tender_chat.core.loader import ResourceLoader
from tender_chat.rendering.chart_adapter import ChartRenderAdapter
from tender_chat.rendering.matplotlib_engine import ChartEngineRegistry, chart_filename
from tender_chat.schemas.chat import ChartSeries, ChartSpec, PieSlice


def test_chart_filename_is_safe():
    """Test container ids are reduced to safe file names."""
    assert chart_filename("msg/1 2") == "chart_msg_1_2.png"


@pytest.mark.asyncio
@pytest.mark.parametrize("chart_type", ["bar", "line", "pie"])
async def test_renders_png_through_adapter(tmp_path, chart_type):
    """Test the registry loads lazily and the engine writes a PNG per container."""
    registry = ChartEngineRegistry(output_dir=str(tmp_path))
    loader = ResourceLoader("chart-engine", probe=registry.probe, load=registry.load, interval=0.01, max_attempts=10, timeout=5)
    adapter = ChartRenderAdapter(loader)
    points = [PieSlice(name="X", value=3), PieSlice(name="Y", value=5)] if chart_type == "pie" else None
    spec = ChartSpec(
        chart_type=chart_type,
        title="Items",
        x_label="cat",
        categories=["X", "Y"],
        series=[ChartSeries(name="val", values=[3, 5], stacked=chart_type == "bar", points=points)],
    )

    handle = await adapter.mount("c1", spec)

    assert handle is not None
    assert (tmp_path / "chart_c1.png").exists()
    assert registry.engine.image_url("c1").endswith("/chart_c1.png")
    await adapter.close()
    assert handle.instance.disposed
