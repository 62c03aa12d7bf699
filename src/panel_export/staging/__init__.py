"""
Module: staging

Purpose:
    Off-screen staging of content for capture, isolated from the
    live document view.

Key Classes:
    - Document: Live content nodes and attached staged containers
    - ContentNode / ImageNode: Content abstractions
    - ContentStager: Stage, position and release copies
    - StagedHandle / StagedContainer / StagedNode: Staging resources
"""

from .document import ContentNode, Document, ImageNode, ResourceLoader
from .containers import StagedContainer, StagedNode
from .stager import ContentStager, StagedHandle

__all__ = [
    "ContentNode",
    "Document",
    "ImageNode",
    "ResourceLoader",
    "StagedContainer",
    "StagedNode",
    "ContentStager",
    "StagedHandle",
]
