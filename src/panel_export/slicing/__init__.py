"""
Module: slicing

Purpose:
    Vertical tiling of tall content. Computes the ordered, overlapping
    windows that each exported tile renders.

Key Functions:
    - plan_slices(): Plan tile windows for a content height
    - whole_content_slice(): Single window spanning all content

Key Classes:
    - ContentMetrics: Measured natural size of content
    - SliceDescriptor: One tile window

Used By:
    - panel_export.controller: Export orchestration
    - panel_export.staging.stager: Per-tile positioning
"""

from .models import ContentMetrics, SliceDescriptor
from .planner import plan_slices, whole_content_slice

__all__ = [
    "ContentMetrics",
    "SliceDescriptor",
    "plan_slices",
    "whole_content_slice",
]
