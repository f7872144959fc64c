"""Error taxonomy for the rendering and export pipelines.

Visualization errors are raised inside the rendering pipeline and swallowed at
its boundary; callers simply render nothing. Export errors always reach the
user as a notification, so each carries a ``user_message``.
"""

class TenderChatError(Exception):
    """Base class for application exceptions."""
    pass

# --- Visualization / rendering ---
class VisualizationError(TenderChatError):
    """Base class for chart and table rendering failures."""
    pass

class ShapeMismatch(VisualizationError):
    """No recognizable table in a payload."""
    pass

class MissingAxisColumn(VisualizationError):
    """A visualization descriptor references a column absent from the table."""
    pass

class UnsupportedChartType(VisualizationError):
    """A visualization descriptor requests a chart type we cannot build."""
    pass

# --- Library loading ---
class LibraryLoadError(TenderChatError):
    """A lazily loaded library or resource failed to load."""
    pass

class LibraryLoadTimeout(LibraryLoadError):
    """A lazily loaded library never became ready within its polling budget."""
    pass

# --- Export ---
class ExportError(TenderChatError):
    """Base class for export failures. ``user_message`` is shown to the user."""

    default_message = "Export failed. Please try again."

    def __init__(self, message: str = "", user_message: str = ""):
        super().__init__(message or user_message or self.default_message)
        self.user_message = user_message or self.default_message

class ExportNetworkError(ExportError):
    """Export endpoint unreachable."""
    default_message = "Could not reach the export service. Please check your connection and try again."

class ExportServerError(ExportError):
    """Export endpoint answered with an error status or an error body."""
    default_message = "The export service returned an error. Please try again later."

class NoMatchingRows(ExportError):
    """Export query matched nothing."""
    default_message = "No matching records found for this selection."

class ExportInProgress(ExportError):
    """A second click on a cell whose export is still in flight."""
    default_message = "An export for this cell is already in progress."
