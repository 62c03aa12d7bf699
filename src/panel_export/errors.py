"""
Module: errors

Purpose:
    Exception hierarchy for the export pipeline. Every failure surfaced by
    export_image() is one of these, raised exactly once per failed call.

Key Classes:
    - ExportError: Base class for all export failures
    - ConfigError: Invalid margins/slice/export configuration
    - StagingError: Content node missing or could not be duplicated
    - RenderError: Rasterization failed for a slice

Used By:
    - panel_export.config: Validation on construction
    - panel_export.slicing.planner: Slice configuration checks
    - panel_export.staging.stager: Staging failures
    - panel_export.controller: Render failure wrapping
"""

from __future__ import annotations

from typing import Optional


class ExportError(Exception):
    """Base class for export pipeline errors."""
    pass


class ConfigError(ExportError, ValueError):
    """Invalid export configuration. Raised before any staging occurs."""
    pass


class StagingError(ExportError):
    """Content node missing or could not be staged."""
    pass


class RenderError(ExportError):
    """
    Rasterization failed.
    
    When raised by the orchestrator, identifies the failing slice
    (0-indexed) and the total slice count of the aborted export.
    
    Attributes:
        slice_index: Index of the failing slice (None outside an export)
        slice_count: Total slices planned for the export
        cause: Underlying collaborator exception, if any
    """
    
    def __init__(
        self,
        message: str,
        *,
        slice_index: Optional[int] = None,
        slice_count: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.slice_index = slice_index
        self.slice_count = slice_count
        self.cause = cause
