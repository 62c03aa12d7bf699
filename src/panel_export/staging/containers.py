"""
Module: staging.containers

Purpose:
    Off-screen copies of content and the containers that frame them
    for capture. These are the only mutable objects of an export, and
    each is owned by exactly one in-flight export call.

Key Classes:
    - StagedNode: Detached clone of content laid out at a fixed width
    - StagedContainer: Padded, clipped frame around a StagedNode

Dependencies:
    - PIL: Compositing
    - panel_export.config: Margins
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from PIL import Image

from panel_export.config import Margins

from .document import ContentNode, ResourceLoader


@dataclass
class StagedNode:
    """
    Detached copy of a content node, laid out at content width.
    
    Attributes:
        source: Cloned content node (never the live node)
        image: Laid-out content pixels
    """
    
    source: ContentNode
    image: Image.Image
    
    @property
    def width(self) -> int:
        return self.image.width
    
    @property
    def height(self) -> int:
        return self.image.height
    
    def clone(self) -> "StagedNode":
        """Fresh copy for per-slice capture."""
        return StagedNode(source=self.source.clone(), image=self.image.copy())
    
    def pending_resources(self) -> Sequence[ResourceLoader]:
        return self.source.pending_resources()


@dataclass(eq=False)
class StagedContainer:
    """
    Capture frame around a staged node.
    
    The visible content window is [translate_y, translate_y + window_height)
    of the child, pasted inside the padding box. Anything past the
    child's bottom edge shows the background.
    
    Attributes:
        width: Total width including horizontal padding
        background_color: Fill colour
        padding: Padding applied around the content window
        child: Staged node currently parented in this container
        translate_y: Upward shift of the child (the slice start)
        window_height: Visible content rows (None = whole child)
        offscreen: False once positioned for capture
    """
    
    width: int
    background_color: str
    padding: Margins = field(default_factory=lambda: Margins.uniform(0))
    child: Optional[StagedNode] = None
    translate_y: int = 0
    window_height: Optional[int] = None
    offscreen: bool = True
    
    @property
    def content_height(self) -> int:
        """Height of the visible content window."""
        if self.window_height is not None:
            return self.window_height
        return self.child.height if self.child is not None else 0
    
    @property
    def height(self) -> int:
        """Total height including vertical padding."""
        return self.padding.top + self.content_height + self.padding.bottom
    
    def pending_resources(self) -> Sequence[ResourceLoader]:
        if self.child is None:
            return ()
        return self.child.pending_resources()
    
    def replace_child(self, child: StagedNode) -> None:
        """Re-parent a node, dropping the previous child."""
        self.child = child
    
    def compose(self) -> Image.Image:
        """
        Paint the container at 1x.
        
        Returns:
            RGB image of size (width, height)
        """
        canvas = Image.new("RGB", (self.width, max(1, self.height)), self.background_color)
        if self.child is None or self.content_height <= 0:
            return canvas
        
        top = min(self.translate_y, self.child.height)
        bottom = min(self.translate_y + self.content_height, self.child.height)
        if bottom <= top:
            return canvas
        
        window = self.child.image.crop((0, top, self.child.width, bottom))
        origin = (self.padding.left, self.padding.top)
        if window.mode in ("RGBA", "LA") or "transparency" in window.info:
            window = window.convert("RGBA")
            canvas.paste(window, origin, window)
        else:
            canvas.paste(window.convert("RGB"), origin)
        return canvas
