"""
Module: output.renderer

Purpose:
    Rasterize staged containers to encoded image bytes. The Renderer
    interface is the seam for alternative rendering engines; the
    Pillow implementation composes the container and applies the
    density scale.

Key Classes:
    - Renderer: Abstract rasterization capability
    - PillowRenderer: Default Pillow-backed renderer

Key Functions:
    - to_data_url(): Encode image bytes as a data: URL

Dependencies:
    - PIL: Compositing, resampling, encoding
    - panel_export.staging.containers: StagedContainer

Used By:
    - panel_export.controller: Export orchestration
"""

from __future__ import annotations

import base64
import io
import logging
from abc import ABC, abstractmethod

from PIL import Image

from panel_export.errors import RenderError
from panel_export.staging.containers import StagedContainer

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_FORMAT = "PNG"

_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


class Renderer(ABC):
    """
    Abstract rasterization capability.
    
    The orchestrator always requests pixel dimensions equal to the
    container's CSS size times `scale`, and expects the renderer to
    scale content by the same factor so output stays sharp.
    """
    
    @abstractmethod
    async def rasterize(
        self,
        node: StagedContainer,
        pixel_width: int,
        pixel_height: int,
        scale: float,
        background_color: str,
    ) -> bytes:
        """
        Rasterize a staged container.
        
        Args:
            node: Container positioned for capture
            pixel_width: Output width in device pixels
            pixel_height: Output height in device pixels
            scale: Visual scale transform applied to the content
            background_color: Fill for uncovered pixels
            
        Returns:
            Encoded image bytes
            
        Raises:
            RenderError: If rasterization fails
        """


class PillowRenderer(Renderer):
    """
    Renderer that paints containers with Pillow.
    
    Example:
        >>> renderer = PillowRenderer()
        >>> data = await renderer.rasterize(container, 1120, 1600, 2, "#fff")
    """
    
    def __init__(self, image_format: str = DEFAULT_IMAGE_FORMAT) -> None:
        self._image_format = image_format.upper()
    
    @property
    def image_format(self) -> str:
        return self._image_format
    
    async def rasterize(
        self,
        node: StagedContainer,
        pixel_width: int,
        pixel_height: int,
        scale: float,
        background_color: str,
    ) -> bytes:
        if pixel_width <= 0 or pixel_height <= 0:
            raise RenderError(f"Invalid pixel size: {pixel_width}x{pixel_height}")
        if scale <= 0:
            raise RenderError(f"Invalid scale: {scale}")
        
        try:
            image = node.compose()
            if scale != 1:
                scaled_size = (
                    max(1, int(round(image.width * scale))),
                    max(1, int(round(image.height * scale))),
                )
                image = image.resize(scaled_size, Image.Resampling.LANCZOS)
            
            canvas = Image.new("RGB", (pixel_width, pixel_height), background_color)
            canvas.paste(image, (0, 0))
            return _encode(canvas, self._image_format)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Rasterization failed: {e}", cause=e) from e


def _encode(image: Image.Image, image_format: str) -> bytes:
    buf = io.BytesIO()
    if image_format == "JPEG":
        image.save(buf, format=image_format, quality=100)
    else:
        image.save(buf, format=image_format)
    return buf.getvalue()


def to_data_url(data: bytes, image_format: str = DEFAULT_IMAGE_FORMAT) -> str:
    """
    Encode image bytes as a data: URL.
    
    Args:
        data: Encoded image bytes
        image_format: Pillow format name of the bytes
        
    Returns:
        "data:<mime>;base64,<payload>"
    """
    mime = _MIME_TYPES.get(image_format.upper())
    if mime is None:
        raise ValueError(f"Unsupported image format: {image_format}")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
