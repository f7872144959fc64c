import asyncio

import pytest

from tender_chat.core.loader import ResourceLoader
from tender_chat.rendering.chart_adapter import ChartRenderAdapter, Viewport, translate_to_option
from tender_chat.schemas.chat import ChartSeries, ChartSpec, PieSlice


class FakeInstance:
    def __init__(self, container):
        self.container = container
        self.options = []
        self.resizes = 0
        self.disposed = False

    def set_option(self, option, not_merge=True):
        self.options.append((option, not_merge))

    def resize(self):
        self.resizes += 1

    def dispose(self):
        self.disposed = True


class FakeEngine:
    def __init__(self):
        self.instances = []

    def init(self, container):
        instance = FakeInstance(container)
        self.instances.append(instance)
        return instance


def bar_spec(categories=("Active", "Expired"), stacked=False):
    return ChartSpec(
        chart_type="bar",
        title="Items by status",
        x_label="RC Status",
        categories=list(categories),
        series=[
            ChartSeries(name="EDL", values=[1.0] * len(categories), stacked=stacked),
            ChartSeries(name="Non-EDL", values=[2.0] * len(categories), stacked=stacked),
        ],
    )


def ready_loader(engine):
    return ResourceLoader("fake-engine", probe=lambda: engine, interval=0.01, max_attempts=3, timeout=1)


@pytest.mark.asyncio
async def test_mount_renders_and_subscribes_resize():
    """Test mount initializes one instance, sets the option and tracks resize."""
    engine = FakeEngine()
    adapter = ChartRenderAdapter(ready_loader(engine))

    handle = await adapter.mount("c1", bar_spec())

    instance = engine.instances[0]
    option, not_merge = instance.options[0]
    assert not_merge is True
    assert option["xAxis"]["data"] == ["Active", "Expired"]
    assert adapter.viewport.listener_count == 1

    adapter.viewport.notify_resize()
    assert instance.resizes == 1

    adapter.unmount(handle)
    assert instance.disposed
    assert adapter.viewport.listener_count == 0
    assert adapter.handle_for("c1") is None


@pytest.mark.asyncio
async def test_remount_disposes_previous_instance():
    """Test a re-render disposes the old instance before creating a new one."""
    engine = FakeEngine()
    adapter = ChartRenderAdapter(ready_loader(engine))

    await adapter.mount("c1", bar_spec())
    await adapter.mount("c1", bar_spec(categories=("A",)))

    old, new = engine.instances
    assert old.disposed and not new.disposed
    assert adapter.viewport.listener_count == 1


@pytest.mark.asyncio
async def test_empty_spec_is_invalid():
    """Test an empty spec renders nothing."""
    engine = FakeEngine()
    adapter = ChartRenderAdapter(ready_loader(engine))

    assert await adapter.mount("c1", None) is None
    assert await adapter.mount("c1", bar_spec(categories=())) is None
    assert engine.instances == []


@pytest.mark.asyncio
async def test_engine_timeout_is_invalid():
    """Test an engine that never loads yields no chart."""
    loader = ResourceLoader("missing", probe=lambda: None, interval=0.001, max_attempts=3, timeout=1)
    adapter = ChartRenderAdapter(loader)

    assert await adapter.mount("c1", bar_spec()) is None


@pytest.mark.asyncio
async def test_close_cancels_pending_wait_and_unmounts():
    """Test teardown cancels a pending engine wait and disposes mounted charts."""
    engine = FakeEngine()
    mounted = ChartRenderAdapter(ready_loader(engine))
    handle = await mounted.mount("c1", bar_spec())
    await mounted.close()
    assert not handle.mounted and engine.instances[0].disposed

    waiting = ChartRenderAdapter(ResourceLoader("slow", probe=lambda: None, interval=0.01, max_attempts=10_000, timeout=10))
    pending = asyncio.ensure_future(waiting.mount("c2", bar_spec()))
    await asyncio.sleep(0.02)
    await waiting.close()

    assert await pending is None


def test_option_translation_cartesian():
    """Test tooltip, legend, stacking and label rotation."""
    many = [f"Status {i}" for i in range(11)]
    option = translate_to_option(bar_spec(categories=many, stacked=True))

    assert option["title"]["left"] == "center"
    assert option["tooltip"] == {"trigger": "axis", "axisPointer": {"type": "shadow"}}
    assert option["legend"]["data"] == ["EDL", "Non-EDL"]
    assert option["xAxis"]["axisLabel"]["rotate"] == 45
    assert all(series["stack"] == "stack" for series in option["series"])

    few = translate_to_option(bar_spec())
    assert few["xAxis"]["axisLabel"]["rotate"] == 0
    assert "stack" not in few["series"][0]


def test_option_translation_line_and_pie():
    """Test line smoothing and pie series layout."""
    line = bar_spec().model_copy(update={"chart_type": "line"})
    line_option = translate_to_option(line)
    assert line_option["tooltip"]["axisPointer"]["type"] == "line"
    assert all(series["smooth"] for series in line_option["series"])

    pie = ChartSpec(
        chart_type="pie",
        title="",
        x_label="cat",
        categories=["X", "Y"],
        series=[ChartSeries(name="val", values=[10, 20], points=[PieSlice(name="X", value=10), PieSlice(name="Y", value=20)])],
    )
    pie_option = translate_to_option(pie)
    assert pie_option["title"]["text"] == "Chart"
    assert pie_option["tooltip"]["trigger"] == "item"
    assert pie_option["series"][0]["radius"] == "50%"
    assert pie_option["series"][0]["data"] == [{"name": "X", "value": 10}, {"name": "Y", "value": 20}]
    assert "xAxis" not in pie_option


def test_viewport_listener_errors_do_not_stop_others():
    """Test one failing resize listener does not block the rest."""
    viewport = Viewport()
    calls = []

    def broken():
        raise RuntimeError("boom")

    viewport.subscribe(broken)
    viewport.subscribe(lambda: calls.append(1))
    viewport.notify_resize()

    assert calls == [1]
