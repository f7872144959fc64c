import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import matplotlib
matplotlib.use('Agg') # Use Agg backend for non-interactive environments (important for servers)
import matplotlib.pyplot as plt
import seaborn as sns

from tender_chat.core.config import settings

logger = logging.getLogger(__name__)

_SAFE_CONTAINER = re.compile(r"[^A-Za-z0-9_.-]+")


def chart_filename(container: str) -> str:
    return f"chart_{_SAFE_CONTAINER.sub('_', container)}.png"


class MatplotlibChartInstance:
    """One figure bound to one container; draws ECharts-style options."""

    def __init__(self, container: str, output_dir: Path):
        self.container = container
        self.path = output_dir / chart_filename(container)
        self.option: Optional[Dict[str, Any]] = None
        self.disposed = False
        self._fig, self._ax = plt.subplots(figsize=(12, 7))

    def set_option(self, option: Dict[str, Any], not_merge: bool = True) -> None:
        if self.disposed:
            raise RuntimeError(f"Chart instance for '{self.container}' was disposed")
        self.option = dict(option) if not_merge or self.option is None else {**self.option, **option}
        self._ax.cla()

        series = self.option.get("series") or []
        chart_type = series[0].get("type") if series else None
        if chart_type == "pie":
            self._draw_pie(series[0])
        elif chart_type in ("bar", "line"):
            self._draw_cartesian(chart_type, series)
        else:
            raise ValueError(f"Unsupported series type: {chart_type}")

        title = (self.option.get("title") or {}).get("text")
        if title:
            self._ax.set_title(title, fontsize=16, fontweight="bold")
        self._save()

    def resize(self) -> None:
        if self.disposed or self.option is None:
            return
        self._save()

    def dispose(self) -> None:
        if not self.disposed:
            plt.close(self._fig)
            self.disposed = True

    def _draw_cartesian(self, chart_type: str, series: list) -> None:
        x_axis = self.option.get("xAxis") or {}
        categories = x_axis.get("data") or []
        df = pd.DataFrame({entry["name"]: entry["data"] for entry in series}, index=categories)
        stacked = any(entry.get("stack") for entry in series)
        rotation = (x_axis.get("axisLabel") or {}).get("rotate", 0)

        if chart_type == "bar":
            df.plot(kind="bar", stacked=stacked, ax=self._ax, rot=rotation)
        else:
            df.plot(kind="line", marker="o", ax=self._ax, rot=rotation)
            self._ax.set_xticks(range(len(categories)))
            self._ax.set_xticklabels(categories, rotation=rotation)

        if x_axis.get("name"):
            self._ax.set_xlabel(x_axis["name"], fontsize=12)
        if len(series) > 1 and self._ax.get_legend() is not None:
            self._ax.legend(loc="upper center", bbox_to_anchor=(0.5, -0.15), ncol=min(len(series), 4))
        elif self._ax.get_legend() is not None:
            self._ax.get_legend().remove()

    def _draw_pie(self, entry: Dict[str, Any]) -> None:
        points = entry.get("data") or []
        values = [point["value"] for point in points]
        labels = [point["name"] for point in points]
        if not any(values):
            self._ax.text(0.5, 0.5, "No data", ha="center", va="center")
            self._ax.axis("off")
            return
        self._ax.pie(values, labels=labels, autopct='%1.1f%%', startangle=90)
        self._ax.axis('equal')  # Equal aspect ratio ensures a circular pie chart

    def _save(self) -> None:
        self._fig.tight_layout()
        self._fig.savefig(self.path, format="png", bbox_inches="tight")
        logger.debug(f"[MatplotlibChartInstance:{self.container}] Saved chart to {self.path}")


class MatplotlibChartEngine:
    """Chart engine writing PNG files into CHART_DIR."""

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or settings.CHART_DIR)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def init(self, container: str) -> MatplotlibChartInstance:
        return MatplotlibChartInstance(container, self.output_dir)

    def image_url(self, container: str) -> str:
        return f"{settings.CHART_URL_BASE.rstrip('/')}/{chart_filename(container)}"


class ChartEngineRegistry:
    """Holds the chart engine once it has been loaded; probed by the ResourceLoader."""

    def __init__(self, output_dir: Optional[str] = None):
        self._output_dir = output_dir
        self.engine: Optional[MatplotlibChartEngine] = None

    def probe(self) -> Optional[MatplotlibChartEngine]:
        return self.engine

    def load(self) -> None:
        if self.engine is not None:
            return
        sns.set_theme(style="whitegrid")
        self.engine = MatplotlibChartEngine(self._output_dir)
        logger.info(f"[ChartEngineRegistry] Matplotlib chart engine ready (output: {self.engine.output_dir}).")
