import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from tender_chat.core.exceptions import LibraryLoadError
from tender_chat.core.loader import ResourceLoader
from tender_chat.schemas.chat import ChartSpec

logger = logging.getLogger(__name__)

# Rotate category labels once there are more than this many
LABEL_ROTATION_THRESHOLD = 10


class ChartInstance(Protocol):
    def set_option(self, option: Dict[str, Any], not_merge: bool = True) -> None: ...
    def resize(self) -> None: ...
    def dispose(self) -> None: ...


class ChartEngine(Protocol):
    def init(self, container: str) -> ChartInstance: ...


class Viewport:
    """Resize notifications for mounted charts."""

    def __init__(self):
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def notify_resize(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"[Viewport] Resize listener failed: {e}", exc_info=True)


class ChartHandle:
    def __init__(self, container: str, instance: ChartInstance, on_resize: Callable[[], None]):
        self.container = container
        self.instance = instance
        self.on_resize = on_resize
        self.mounted = True


def translate_to_option(spec: ChartSpec) -> Dict[str, Any]:
    """Translate a ChartSpec into the engine's (ECharts-style) option format."""
    option: Dict[str, Any] = {
        "title": {
            "text": spec.title or "Chart",
            "left": "center",
            "textStyle": {"fontSize": 16, "fontWeight": "bold"},
        },
        "tooltip": {
            "trigger": "item" if spec.chart_type == "pie" else "axis",
            "axisPointer": {"type": "line" if spec.chart_type == "line" else "shadow"},
        },
        "legend": {"data": [series.name for series in spec.series], "top": "bottom"},
    }

    if spec.chart_type == "pie":
        series = spec.series[0]
        option["series"] = [{
            "name": series.name,
            "type": "pie",
            "radius": "50%",
            "data": [point.model_dump() for point in (series.points or [])],
            "emphasis": {
                "itemStyle": {"shadowBlur": 10, "shadowOffsetX": 0, "shadowColor": "rgba(0, 0, 0, 0.5)"},
            },
        }]
        return option

    option["xAxis"] = {
        "type": "category",
        "name": spec.x_label,
        "data": list(spec.categories),
        "axisLabel": {
            "rotate": 45 if len(spec.categories) > LABEL_ROTATION_THRESHOLD else 0,
            "interval": 0,
        },
    }
    option["yAxis"] = {"type": "value"}

    option_series = []
    for series in spec.series:
        entry: Dict[str, Any] = {"name": series.name, "type": spec.chart_type, "data": list(series.values)}
        if spec.chart_type == "bar" and series.stacked:
            entry["stack"] = "stack"
        if spec.chart_type == "line":
            entry["smooth"] = True
        option_series.append(entry)
    option["series"] = option_series
    return option


class ChartRenderAdapter:
    """Owns one engine instance per chart container.

    The engine is injected through a ResourceLoader so the adapter can wait for
    it to become available; ``close()`` cancels pending waits and unmounts all
    charts (component teardown).
    """

    def __init__(self, engine_loader: ResourceLoader, viewport: Optional[Viewport] = None):
        self._engine_loader = engine_loader
        self.viewport = viewport or Viewport()
        self._handles: Dict[str, ChartHandle] = {}
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    async def mount(self, container: str, spec: Optional[ChartSpec]) -> Optional[ChartHandle]:
        """Render ``spec`` into ``container``. Returns None when the chart is invalid."""
        log_prefix = f"[ChartRenderAdapter:{container}] "
        if spec is None or not spec.series or not spec.categories:
            logger.warning(f"{log_prefix}Empty chart spec, nothing to render.")
            return None

        wait = asyncio.ensure_future(self._engine_loader.acquire())
        self._pending.add(wait)
        try:
            engine: ChartEngine = await wait
        except LibraryLoadError as e:
            logger.warning(f"{log_prefix}Chart engine unavailable: {e}")
            return None
        except asyncio.CancelledError:
            if not self._closed:
                raise
            logger.debug(f"{log_prefix}Engine wait cancelled by teardown.")
            return None
        finally:
            self._pending.discard(wait)

        # Never leave two live instances on one container
        previous = self._handles.pop(container, None)
        if previous is not None:
            logger.debug(f"{log_prefix}Disposing previous instance before re-render.")
            self._teardown(previous)

        instance = None
        try:
            instance = engine.init(container)
            instance.set_option(translate_to_option(spec), True)
        except Exception as e:
            logger.error(f"{log_prefix}Error rendering chart: {e}", exc_info=True)
            if instance is not None:
                instance.dispose()
            return None

        def on_resize():
            instance.resize()

        self.viewport.subscribe(on_resize)
        handle = ChartHandle(container, instance, on_resize)
        self._handles[container] = handle
        logger.info(f"{log_prefix}Mounted {spec.chart_type} chart '{spec.title}'.")
        return handle

    def unmount(self, handle: Optional[ChartHandle]) -> None:
        if handle is None or not handle.mounted:
            return
        if self._handles.get(handle.container) is handle:
            del self._handles[handle.container]
        self._teardown(handle)
        logger.debug(f"[ChartRenderAdapter:{handle.container}] Unmounted.")

    def handle_for(self, container: str) -> Optional[ChartHandle]:
        return self._handles.get(container)

    async def close(self) -> None:
        """Cancel pending engine waits and unmount every chart."""
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()
        self._engine_loader.cancel()
        for handle in list(self._handles.values()):
            self.unmount(handle)

    def _teardown(self, handle: ChartHandle) -> None:
        self.viewport.unsubscribe(handle.on_resize)
        try:
            handle.instance.dispose()
        except Exception as e:
            logger.error(f"[ChartRenderAdapter:{handle.container}] Error disposing chart: {e}", exc_info=True)
        handle.mounted = False
