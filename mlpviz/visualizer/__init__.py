"""
Visualizer Module
=================

Layout, coloring and rendering of the four training diagrams.

Classes:
    LayoutEngine       - Cell and label geometry per diagram kind
    ColorMapper        - Three-stop diverging palette
    TooltipCoordinator - Shared hover tooltip state
    RenderPipeline     - Draw lists for weights, activations, gradients and loss
    PygameSurface      - Paints draw lists with pygame
    HoverTracker       - Routes pointer motion to cell callbacks
"""

from .layout import LayoutEngine, DiagramKind, create_labels
from .colors import ColorMapper
from .tooltip import TooltipCoordinator, TooltipState, CellMetadata, get_tooltip_coordinator
from .render import RenderPipeline, DrawList
from .surface import PygameSurface, HoverTracker

__all__ = [
    'LayoutEngine', 'DiagramKind', 'create_labels', 'ColorMapper',
    'TooltipCoordinator', 'TooltipState', 'CellMetadata', 'get_tooltip_coordinator',
    'RenderPipeline', 'DrawList', 'PygameSurface', 'HoverTracker',
]
