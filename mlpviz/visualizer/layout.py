"""
Diagram Layout
==============

Pure geometry for the four diagrams. Given layer sizes, a viewport and a
diagram kind, compute where every cell and label goes. Nothing here draws or
keeps state; the render pipeline combines this with snapshot values.

Cell size:
    cell = min(width / (layout_factor * max_layer), height / layout_height_factor)

Matrix diagrams additionally cap the cell so the tallest stage fits inside the
viewport height.

Label elision:
    Layers with more than 10 nodes show the first 3 labels, "...", and the
    last 3. Smaller layers get one label per node. Every diagram uses the same
    rule, so a dimension is labelled identically everywhere.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from config import Config

Color = Tuple[int, int, int]

ELLIPSIS = "..."
ELISION_THRESHOLD = 10
ELISION_KEEP = 3

# Fraction of the viewport height the tallest matrix stage may occupy
MATRIX_ROW_FILL = 0.7


class DiagramKind(Enum):
    """The four synchronized views."""
    WEIGHT_MATRIX = 'weights'
    GRADIENT_MATRIX = 'gradients'
    ACTIVATION_VECTOR = 'activations'
    LOSS_CURVE = 'loss'


@dataclass(frozen=True)
class DiagramPolicy:
    """
    Geometry and presentation constants for one diagram kind.

    Attributes:
        layout_factor: Horizontal divisor applied to the largest layer
        layout_height_factor: Vertical divisor for the cell size
        stage_centers: Horizontal centers (fractions of width) of each panel
        titles: Panel titles, one per stage or layer
        caption: Optional legend line under the diagram
    """
    kind: DiagramKind
    layout_factor: float
    layout_height_factor: float
    stage_centers: Tuple[float, ...] = ()
    titles: Tuple[str, ...] = ()
    caption: Optional[str] = None


POLICIES: Dict[DiagramKind, DiagramPolicy] = {
    DiagramKind.WEIGHT_MATRIX: DiagramPolicy(
        kind=DiagramKind.WEIGHT_MATRIX,
        layout_factor=2.5,
        layout_height_factor=4.0,
        stage_centers=(0.25, 0.75),
        titles=("Input-Hidden Weights", "Hidden-Output Weights"),
        caption="Color encodes weight value: Red (positive), White (near zero), Blue (negative)",
    ),
    DiagramKind.GRADIENT_MATRIX: DiagramPolicy(
        kind=DiagramKind.GRADIENT_MATRIX,
        layout_factor=2.5,
        layout_height_factor=4.0,
        stage_centers=(0.25, 0.75),
        titles=("Input-Hidden Gradients", "Hidden-Output Gradients"),
    ),
    DiagramKind.ACTIVATION_VECTOR: DiagramPolicy(
        kind=DiagramKind.ACTIVATION_VECTOR,
        layout_factor=4.0,
        layout_height_factor=2.0,
        stage_centers=(0.125, 0.375, 0.625, 0.875),
        titles=("Input", "Hidden (Pre-ReLU)", "Hidden (Post-ReLU)", "Output"),
    ),
    DiagramKind.LOSS_CURVE: DiagramPolicy(
        kind=DiagramKind.LOSS_CURVE,
        layout_factor=1.0,
        layout_height_factor=1.0,
        titles=("Training Steps", "Loss (log scale)"),
    ),
}


@dataclass(frozen=True)
class CellGeometry:
    """
    Top-left corner and size of one matrix or vector entry.

    group is the stage (matrices) or layer panel (vectors) the cell belongs
    to; row/col index the entry inside it (col is 0 for vectors).
    """
    x: float
    y: float
    size: float
    group: int
    row: int
    col: int = 0


@dataclass(frozen=True)
class Label:
    """Positioned text. anchor is 'start', 'middle' or 'end'."""
    text: str
    x: float
    y: float
    color: Color
    anchor: str = 'middle'
    size: int = 12


@dataclass
class DiagramGeometry:
    """Everything the renderer needs to place one diagram."""
    kind: DiagramKind
    width: float
    height: float
    cell_size: float = 0.0
    cells: List[CellGeometry] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def cells_in_group(self, group: int) -> List[CellGeometry]:
        return [c for c in self.cells if c.group == group]


def create_labels(count: int, prefix: str, threshold: int = ELISION_THRESHOLD) -> List[str]:
    """
    1-based node labels for a layer, elided when the layer is large.

    Example:
        >>> create_labels(3, "H")
        ['H1', 'H2', 'H3']
        >>> create_labels(16, "H")
        ['H1', 'H2', 'H3', '...', 'H14', 'H15', 'H16']
    """
    if count <= 0:
        return []
    if count <= threshold:
        return [f"{prefix}{i + 1}" for i in range(count)]
    head = [f"{prefix}{i + 1}" for i in range(ELISION_KEEP)]
    tail = [f"{prefix}{count - i}" for i in reversed(range(ELISION_KEEP))]
    return head + [ELLIPSIS] + tail


def label_offset(index: int, num_labels: int, count: int, cell_size: float) -> float:
    """
    Offset of a label's center along an axis of count cells.

    Labels are spread over the (count - 1) cell spacing so the first and last
    labels sit on the first and last cell centers even when elided.
    """
    if num_labels <= 1:
        return cell_size / 2
    return (index / (num_labels - 1)) * (count - 1) * cell_size + cell_size / 2


def compute_cell_size(
    width: float,
    height: float,
    max_nodes: int,
    policy: DiagramPolicy,
    max_rows: int = 1
) -> float:
    """Uniform cell size that keeps the largest layer inside the viewport."""
    size = min(
        width / (policy.layout_factor * max_nodes),
        height / policy.layout_height_factor,
    )
    if max_rows > 1:
        size = min(size, height * MATRIX_ROW_FILL / max_rows)
    return size


class LayoutEngine:
    """
    Computes cell and label geometry for the matrix and vector diagrams.

    Example:
        >>> engine = LayoutEngine(Config())
        >>> geo = engine.layout(DiagramKind.WEIGHT_MATRIX, (2, 2, 1), 700, 500)
        >>> len(geo.cells)
        6
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.threshold = self.config.LABEL_ELISION_THRESHOLD
        self.layer_colors = (
            self.config.COLOR_INPUT,
            self.config.COLOR_HIDDEN,
            self.config.COLOR_OUTPUT,
        )
        self.text_color = self.config.TEXT_COLOR

    def layout(
        self,
        kind: DiagramKind,
        layer_sizes: Sequence[int],
        width: float,
        height: float
    ) -> DiagramGeometry:
        """
        Geometry for one diagram.

        Args:
            kind: Matrix or vector diagram kind
            layer_sizes: (m, k, n)
            width: Viewport width
            height: Viewport height

        Returns:
            DiagramGeometry; empty when any layer size or the viewport is not positive
        """
        if kind is DiagramKind.LOSS_CURVE:
            raise ValueError("The loss curve has no cell geometry; use LinearScale/LogScale")

        m, k, n = layer_sizes
        if min(m, k, n) <= 0 or width <= 0 or height <= 0:
            return DiagramGeometry(kind=kind, width=width, height=height)

        if kind is DiagramKind.ACTIVATION_VECTOR:
            return self._layout_vectors((m, k, n), width, height)
        return self._layout_matrices(kind, (m, k, n), width, height)

    def _layout_matrices(
        self,
        kind: DiagramKind,
        layers: Tuple[int, int, int],
        width: float,
        height: float
    ) -> DiagramGeometry:
        """Two stages side by side: (m x k) then (k x n)."""
        policy = POLICIES[kind]
        prefixes = ("I", "H", "O")
        cell = compute_cell_size(width, height, max(layers), policy, max_rows=max(layers[0], layers[1]))
        geo = DiagramGeometry(kind=kind, width=width, height=height, cell_size=cell)

        for stage in range(2):
            rows, cols = layers[stage], layers[stage + 1]
            start_x = width * policy.stage_centers[stage] - cell * cols / 2
            start_y = (height - cell * rows) / 2

            for i in range(rows):
                for j in range(cols):
                    geo.cells.append(CellGeometry(
                        x=start_x + j * cell,
                        y=start_y + i * cell,
                        size=cell,
                        group=stage,
                        row=i,
                        col=j,
                    ))

            geo.labels.append(Label(
                text=policy.titles[stage],
                x=start_x + cell * cols / 2,
                y=start_y - 40,
                color=self.text_color,
                size=16,
            ))

            row_labels = create_labels(rows, prefixes[stage], self.threshold)
            for idx, text in enumerate(row_labels):
                geo.labels.append(Label(
                    text=text,
                    x=start_x - 8,
                    y=start_y + label_offset(idx, len(row_labels), rows, cell),
                    color=self.layer_colors[stage],
                    anchor='end',
                ))

            col_labels = create_labels(cols, prefixes[stage + 1], self.threshold)
            for idx, text in enumerate(col_labels):
                geo.labels.append(Label(
                    text=text,
                    x=start_x + label_offset(idx, len(col_labels), cols, cell),
                    y=start_y - 12,
                    color=self.layer_colors[stage + 1],
                ))

        return geo

    def _layout_vectors(
        self,
        layers: Tuple[int, int, int],
        width: float,
        height: float
    ) -> DiagramGeometry:
        """Four panels in a row: input, hidden pre, hidden post, output."""
        policy = POLICIES[DiagramKind.ACTIVATION_VECTOR]
        m, k, n = layers
        sizes = (m, k, k, n)
        prefixes = ("I", "H", "H", "O")
        colors = (self.layer_colors[0], self.layer_colors[1], self.layer_colors[1], self.layer_colors[2])

        cell = compute_cell_size(width, height, max(sizes), policy)
        geo = DiagramGeometry(kind=DiagramKind.ACTIVATION_VECTOR, width=width, height=height, cell_size=cell)
        start_y = (height - cell) / 2

        for panel, size in enumerate(sizes):
            start_x = width * policy.stage_centers[panel] - cell * size / 2

            for i in range(size):
                geo.cells.append(CellGeometry(
                    x=start_x + i * cell,
                    y=start_y,
                    size=cell,
                    group=panel,
                    row=i,
                ))

            geo.labels.append(Label(
                text=policy.titles[panel],
                x=start_x + cell * size / 2,
                y=start_y - 24,
                color=self.text_color,
                size=14,
            ))

            node_labels = create_labels(size, prefixes[panel], self.threshold)
            for idx, text in enumerate(node_labels):
                geo.labels.append(Label(
                    text=text,
                    x=start_x + label_offset(idx, len(node_labels), size, cell),
                    y=start_y + cell + 12,
                    color=colors[panel],
                    size=10,
                ))

        return geo


# ----------------------------------------------------------------------
# Loss curve scales
# ----------------------------------------------------------------------

def _nice_step(span: float, count: int) -> float:
    """Round span / count to 1, 2 or 5 times a power of ten."""
    raw = span / max(count, 1)
    if raw <= 0:
        return 1.0
    magnitude = 10 ** math.floor(math.log10(raw))
    for multiple in (1, 2, 5, 10):
        if raw <= multiple * magnitude:
            return multiple * magnitude
    return 10 * magnitude


@dataclass(frozen=True)
class LinearScale:
    """Maps [d0, d1] onto [r0, r1]."""
    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return r0 + (value - d0) / (d1 - d0) * (r1 - r0)

    def ticks(self, count: int = 5) -> List[float]:
        d0, d1 = self.domain
        if d1 <= d0:
            return [d0]
        step = _nice_step(d1 - d0, count)
        first = math.ceil(d0 / step) * step
        ticks = []
        value = first
        while value <= d1 + step * 1e-9:
            ticks.append(round(value, 12))
            value += step
        return ticks


@dataclass(frozen=True)
class LogScale:
    """
    Maps [d0, d1] onto [r0, r1] logarithmically.

    Values at or below zero (and NaN) have no logarithm; they are clamped to
    floor before mapping and when fitting the domain. A degenerate domain is widened by one decade around it.
    """
    domain: Tuple[float, float]
    range: Tuple[float, float]
    floor: float = 1e-12

    @classmethod
    def for_values(
        cls,
        values: Sequence[float],
        range_: Tuple[float, float],
        floor: float = 1e-12
    ) -> 'LogScale':
        clamped = [floor if math.isnan(v) or v <= floor else v for v in values] or [1.0]
        low, high = min(clamped), max(clamped)
        if high <= low:
            low, high = low / math.sqrt(10), high * math.sqrt(10)
        return cls(domain=(low, high), range=range_, floor=floor)

    def clamp(self, value: float) -> float:
        if math.isnan(value) or value <= self.floor:
            return self.floor
        return value

    def __call__(self, value: float) -> float:
        d0, d1 = (math.log10(max(d, self.floor)) for d in self.domain)
        r0, r1 = self.range
        v = math.log10(self.clamp(value))
        if d1 == d0:
            return (r0 + r1) / 2
        return r0 + (v - d0) / (d1 - d0) * (r1 - r0)

    def ticks(self, count: int = 5) -> List[float]:
        d0, d1 = self.domain
        lo = math.floor(math.log10(max(d0, self.floor)))
        hi = math.ceil(math.log10(max(d1, self.floor)))
        decades = [10.0 ** e for e in range(lo, hi + 1)]
        ticks = [t for t in decades if d0 <= t <= d1]
        if len(ticks) >= 2:
            stride = max(1, math.ceil(len(ticks) / count))
            return ticks[::stride]
        ticks = sorted(
            t for base in decades for t in (base, 2 * base, 5 * base)
            if d0 <= t <= d1
        )
        return ticks or [d0, d1]
