"""
Render Pipeline
===============

Turns (params, snapshot, loss history, viewport) into draw lists for the four
diagrams. One parameterised renderer handles the matrix and vector diagrams;
the differences between them live in the DiagramPolicy records, the
per-kind value sources and the color domains.

Every call builds a brand-new DrawList and replaces the previous one for that
diagram, so a layer-size change never leaves stale cells behind.

Draw lists are surface-agnostic: rectangles, text and polylines with RGB
colors, plus pointer-enter/leave callbacks on the cells that feed the shared
tooltip.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from config import Config, NetworkParams
from mlpviz.ai.snapshot import ModelSnapshot, empty_snapshot, value_at
from mlpviz.ai.trainer import LossHistory
from mlpviz.utils.logger import get_logger
from mlpviz.visualizer.colors import ColorMapper, Domain
from mlpviz.visualizer.layout import (
    POLICIES,
    DiagramGeometry,
    DiagramKind,
    LayoutEngine,
    LinearScale,
    LogScale,
)
from mlpviz.visualizer.tooltip import CellMetadata, TooltipCoordinator, get_tooltip_coordinator

_logger = get_logger(__name__)

Color = Tuple[int, int, int]
Point = Tuple[float, float]

# Loss chart margins (top, right, bottom, left)
LOSS_MARGIN = (20, 20, 40, 60)
TICK_COUNT = 5
TICK_LENGTH = 5


@dataclass
class RectCommand:
    """Filled rectangle, optionally hoverable."""
    x: float
    y: float
    width: float
    height: float
    fill: Color
    stroke: Optional[Color] = None
    meta: Optional[CellMetadata] = None
    on_enter: Optional[Callable[[Point], None]] = None
    on_leave: Optional[Callable[[], None]] = None

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


@dataclass
class TextCommand:
    """Text anchored at (x, y); anchor is 'start', 'middle' or 'end'."""
    x: float
    y: float
    text: str
    color: Color
    size: int = 12
    anchor: str = 'middle'
    rotation: float = 0.0


@dataclass
class PolylineCommand:
    """Connected line segments."""
    points: List[Point]
    color: Color
    width: int = 1


DrawCommand = Union[RectCommand, TextCommand, PolylineCommand]


@dataclass
class DrawList:
    """Complete contents of one diagram."""
    kind: DiagramKind
    width: float
    height: float
    items: List[DrawCommand] = field(default_factory=list)

    def rects(self) -> List[RectCommand]:
        return [c for c in self.items if isinstance(c, RectCommand)]

    def texts(self) -> List[TextCommand]:
        return [c for c in self.items if isinstance(c, TextCommand)]

    def polylines(self) -> List[PolylineCommand]:
        return [c for c in self.items if isinstance(c, PolylineCommand)]

    def __len__(self) -> int:
        return len(self.items)


def _cell_sources(
    kind: DiagramKind,
    snapshot: ModelSnapshot
) -> Tuple[List[Sequence[float]], List[str]]:
    """Per-group value arrays and tooltip layer names for a kind."""
    if kind is DiagramKind.WEIGHT_MATRIX:
        values = [snapshot.input_hidden_weights, snapshot.hidden_output_weights]
        return values, ["Weight", "Weight"]
    if kind is DiagramKind.GRADIENT_MATRIX:
        values = [snapshot.gradients.input_hidden, snapshot.gradients.hidden_output]
        return values, ["Gradient", "Gradient"]
    acts = snapshot.activations
    values = [acts.input, acts.hidden_pre, acts.hidden_post, acts.output]
    return values, list(POLICIES[kind].titles)


class RenderPipeline:
    """
    Produces draw lists for the weight, gradient, activation and loss diagrams.

    Example:
        >>> pipeline = RenderPipeline(Config())
        >>> draw_list = pipeline.render(DiagramKind.WEIGHT_MATRIX, params, snapshot)
        >>> surface.draw(screen, draw_list, origin=(20, 40))
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        tooltips: Optional[TooltipCoordinator] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Configuration object
            tooltips: Tooltip coordinator for hover callbacks (process-wide one by default)
        """
        self.config = config or Config()
        self.tooltips = tooltips or get_tooltip_coordinator()
        self.layout_engine = LayoutEngine(self.config)
        self.colors = ColorMapper.from_config(self.config)
        self.domains: Dict[DiagramKind, Domain] = {
            DiagramKind.WEIGHT_MATRIX: self.config.WEIGHT_DOMAIN,
            DiagramKind.GRADIENT_MATRIX: self.config.GRADIENT_DOMAIN,
            DiagramKind.ACTIVATION_VECTOR: self.config.WEIGHT_DOMAIN,
        }

        # Latest draw list per diagram, replaced wholesale on every render
        self.draw_lists: Dict[DiagramKind, DrawList] = {}

    def viewport(self, kind: DiagramKind) -> Tuple[int, int]:
        return {
            DiagramKind.WEIGHT_MATRIX: self.config.WEIGHT_VIEWPORT,
            DiagramKind.GRADIENT_MATRIX: self.config.GRADIENT_VIEWPORT,
            DiagramKind.ACTIVATION_VECTOR: self.config.ACTIVATION_VIEWPORT,
            DiagramKind.LOSS_CURVE: self.config.LOSS_VIEWPORT,
        }[kind]

    def render(
        self,
        kind: DiagramKind,
        params: NetworkParams,
        snapshot: Optional[ModelSnapshot] = None,
        loss_history: Optional[LossHistory] = None,
        width: Optional[float] = None,
        height: Optional[float] = None
    ) -> DrawList:
        """
        Build the complete draw list for one diagram.

        Args:
            kind: Diagram to draw
            params: Current architecture
            snapshot: Latest snapshot, or None before training
            loss_history: Loss trace (loss curve only)
            width: Viewport width (config default when omitted)
            height: Viewport height (config default when omitted)

        Returns:
            The new draw list, also stored in self.draw_lists[kind]
        """
        default_w, default_h = self.viewport(kind)
        width = default_w if width is None else width
        height = default_h if height is None else height

        if kind is DiagramKind.LOSS_CURVE:
            draw_list = self._render_loss(loss_history, width, height)
        else:
            draw_list = self._render_cells(kind, params, snapshot, width, height)

        self.draw_lists[kind] = draw_list
        return draw_list

    def render_all(
        self,
        params: NetworkParams,
        snapshot: Optional[ModelSnapshot] = None,
        loss_history: Optional[LossHistory] = None
    ) -> Dict[DiagramKind, DrawList]:
        """Re-render all four diagrams at their configured viewports."""
        for kind in DiagramKind:
            self.render(kind, params, snapshot, loss_history)
        return dict(self.draw_lists)

    # ------------------------------------------------------------------
    # Matrix and vector diagrams
    # ------------------------------------------------------------------

    def _render_cells(
        self,
        kind: DiagramKind,
        params: NetworkParams,
        snapshot: Optional[ModelSnapshot],
        width: float,
        height: float
    ) -> DrawList:
        geo = self.layout_engine.layout(kind, params.layer_sizes, width, height)
        draw_list = DrawList(kind=kind, width=width, height=height)
        if geo.is_empty:
            return draw_list

        # A snapshot shaped for other layer sizes would put values in the wrong cells
        if snapshot is None or not snapshot.matches(params):
            snapshot = empty_snapshot(params)

        sources, layer_names = _cell_sources(kind, snapshot)
        domain = self.domains[kind]
        matrix = kind is not DiagramKind.ACTIVATION_VECTOR
        sizes = params.layer_sizes

        for cell in geo.cells:
            if matrix:
                cols = sizes[cell.group + 1]
                value = value_at(sources[cell.group], cell.row * cols + cell.col)
                j: Optional[int] = cell.col
            else:
                value = value_at(sources[cell.group], cell.row)
                j = None

            meta = CellMetadata(kind=kind, layer=layer_names[cell.group], i=cell.row, j=j, value=value)
            draw_list.items.append(RectCommand(
                x=cell.x,
                y=cell.y,
                width=cell.size,
                height=cell.size,
                fill=self.colors.map(value, domain),
                stroke=self.config.TEXT_COLOR,
                meta=meta,
                on_enter=self._hover_handler(meta),
                on_leave=self.tooltips.on_leave,
            ))

        self._append_labels(draw_list, geo)

        caption = POLICIES[kind].caption
        if caption:
            draw_list.items.append(TextCommand(
                x=width / 2,
                y=height - 20,
                text=caption,
                color=self.config.CAPTION_COLOR,
                size=13,
            ))
        return draw_list

    def _hover_handler(self, meta: CellMetadata) -> Callable[[Point], None]:
        def on_enter(pointer: Point) -> None:
            self.tooltips.on_hover(meta, pointer)
        return on_enter

    @staticmethod
    def _append_labels(draw_list: DrawList, geo: DiagramGeometry) -> None:
        for label in geo.labels:
            draw_list.items.append(TextCommand(
                x=label.x,
                y=label.y,
                text=label.text,
                color=label.color,
                size=label.size,
                anchor=label.anchor,
            ))

    # ------------------------------------------------------------------
    # Loss curve
    # ------------------------------------------------------------------

    def _render_loss(
        self,
        history: Optional[LossHistory],
        width: float,
        height: float
    ) -> DrawList:
        """Linear steps on x, log-scaled loss on y."""
        draw_list = DrawList(kind=DiagramKind.LOSS_CURVE, width=width, height=height)
        if not history:
            return draw_list

        top, right, bottom, left = LOSS_MARGIN
        chart_w = width - left - right
        chart_h = height - top - bottom
        if chart_w <= 0 or chart_h <= 0:
            return draw_list

        steps = history.steps()
        losses = np.asarray(history.losses(), dtype=np.float64)

        floor = self.config.LOSS_FLOOR
        clamped = int(np.sum(~(losses > floor)))
        if clamped:
            _logger.warning(
                f"{clamped} loss value(s) <= {floor:g} clamped for the log scale"
            )

        x = LinearScale(domain=(0.0, float(max(steps))), range=(left, left + chart_w))
        y = LogScale.for_values(losses.tolist(), range_=(top + chart_h, top), floor=floor)
        text_color = self.config.TEXT_COLOR

        # Axes
        draw_list.items.append(PolylineCommand(
            points=[(left, top), (left, top + chart_h), (left + chart_w, top + chart_h)],
            color=text_color,
        ))

        for tick in x.ticks(TICK_COUNT):
            tx = x(tick)
            draw_list.items.append(PolylineCommand(
                points=[(tx, top + chart_h), (tx, top + chart_h + TICK_LENGTH)],
                color=text_color,
            ))
            draw_list.items.append(TextCommand(
                x=tx, y=top + chart_h + 14, text=f"{tick:g}", color=text_color, size=11,
            ))

        for tick in y.ticks(TICK_COUNT):
            ty = y(tick)
            draw_list.items.append(PolylineCommand(
                points=[(left - TICK_LENGTH, ty), (left, ty)],
                color=text_color,
            ))
            draw_list.items.append(TextCommand(
                x=left - 8, y=ty, text=f"{tick:.0e}" if tick < 0.01 else f"{tick:g}",
                color=text_color, size=11, anchor='end',
            ))

        x_title, y_title = POLICIES[DiagramKind.LOSS_CURVE].titles
        draw_list.items.append(TextCommand(
            x=left + chart_w / 2, y=height - 8, text=x_title, color=text_color,
        ))
        draw_list.items.append(TextCommand(
            x=14, y=top + chart_h / 2, text=y_title, color=text_color, rotation=90.0,
        ))

        # Curve
        points = [(x(step), y(loss)) for step, loss in zip(steps, losses.tolist())]
        draw_list.items.append(PolylineCommand(points=points, color=self.config.LOSS_COLOR, width=2))
        return draw_list
