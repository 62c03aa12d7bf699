"""Top-level package for panel_export.

Exports a rendered panel of arbitrary height as one image or as a
sequence of overlapping fixed-size tiles.

Provides subpackages:
- panel_export.slicing – tile planning
- panel_export.staging – off-screen content copies
- panel_export.output – rasterization adapters
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__ = _pkg_version("panel-export")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0"

from .config import ExportConfig, Margins, SliceConfig
from .controller import ExportResult, ImageExporter, export_image, export_image_sync
from .diagnostics import DiagnosticsCollector, DiagnosticsSink, LoggingDiagnostics, NullDiagnostics
from .errors import ConfigError, ExportError, RenderError, StagingError
from .output import PillowRenderer, Renderer, to_data_url
from .slicing import ContentMetrics, SliceDescriptor, plan_slices
from .staging import ContentNode, ContentStager, Document, ImageNode

__all__ = [
    "__version__",
    # Config
    "ExportConfig",
    "Margins",
    "SliceConfig",
    # Orchestrator
    "ExportResult",
    "ImageExporter",
    "export_image",
    "export_image_sync",
    # Diagnostics
    "DiagnosticsCollector",
    "DiagnosticsSink",
    "LoggingDiagnostics",
    "NullDiagnostics",
    # Errors
    "ConfigError",
    "ExportError",
    "RenderError",
    "StagingError",
    # Rendering
    "PillowRenderer",
    "Renderer",
    "to_data_url",
    # Slicing
    "ContentMetrics",
    "SliceDescriptor",
    "plan_slices",
    # Staging
    "ContentNode",
    "ContentStager",
    "Document",
    "ImageNode",
]
