"""
Hover Tooltips
==============

One shared tooltip for every diagram. Pointer-enter on a cell writes a
description and the pointer position into the shared TooltipState;
pointer-leave clears it. The last write wins.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from config import Config
from mlpviz.visualizer.layout import DiagramKind


@dataclass
class TooltipState:
    """Shared tooltip contents."""
    visible: bool = False
    text: str = ""
    x: float = 0.0
    y: float = 0.0

    def as_tuple(self) -> Tuple[bool, str, float, float]:
        return (self.visible, self.text, self.x, self.y)


@dataclass(frozen=True)
class CellMetadata:
    """
    What a rendered cell represents.

    Attributes:
        kind: Diagram the cell belongs to
        layer: "Weight", "Gradient", or the activation layer name
        i: Row (source) index, 0-based
        j: Column (target) index for matrices, None for vectors
        value: Value shown by the cell
    """
    kind: DiagramKind
    layer: str
    i: int
    j: Optional[int]
    value: float


def format_tooltip(meta: CellMetadata, config: Optional[Config] = None) -> str:
    """
    Human-readable cell description.

    Indices are 1-based to agree with the axis labels (I1, H1, ...).
    """
    config = config or Config()
    if meta.kind is DiagramKind.GRADIENT_MATRIX:
        decimals = config.GRADIENT_DECIMALS
    elif meta.kind is DiagramKind.WEIGHT_MATRIX:
        decimals = config.WEIGHT_DECIMALS
    else:
        decimals = config.ACTIVATION_DECIMALS

    if meta.j is None:
        index = f"{meta.i + 1}"
    else:
        index = f"{meta.i + 1},{meta.j + 1}"
    return f"{meta.layer}[{index}]: {meta.value:.{decimals}f}"


class TooltipCoordinator:
    """
    Owns the single TooltipState and turns hover events into writes.

    Example:
        >>> tooltips = TooltipCoordinator()
        >>> tooltips.on_hover(meta, (120, 40))
        >>> tooltips.state.visible
        True
        >>> tooltips.on_leave()
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.state = TooltipState()

    def on_hover(self, meta: CellMetadata, pointer: Tuple[float, float]) -> None:
        self.state.visible = True
        self.state.text = format_tooltip(meta, self.config)
        self.state.x, self.state.y = pointer

    def on_leave(self) -> None:
        self.state.visible = False
        self.state.text = ""
        self.state.x = 0.0
        self.state.y = 0.0


_coordinator: Optional[TooltipCoordinator] = None


def get_tooltip_coordinator() -> TooltipCoordinator:
    """The process-wide coordinator, created on first use."""
    global _coordinator
    if _coordinator is None:
        _coordinator = TooltipCoordinator()
    return _coordinator
