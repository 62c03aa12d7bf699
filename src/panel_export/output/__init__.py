"""
Module: output

Purpose:
    Rasterization of staged content to image bytes.

Key Classes:
    - Renderer: Abstract renderer adapter
    - PillowRenderer: Pillow-backed default

Key Functions:
    - to_data_url(): Bytes to data: URL
"""

from .renderer import DEFAULT_IMAGE_FORMAT, PillowRenderer, Renderer, to_data_url

__all__ = [
    "DEFAULT_IMAGE_FORMAT",
    "PillowRenderer",
    "Renderer",
    "to_data_url",
]
