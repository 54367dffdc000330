"""
Tests for diagram layout and loss curve scales.
"""

import math

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mlpviz.visualizer.layout import (
    ELLIPSIS,
    POLICIES,
    DiagramKind,
    LayoutEngine,
    LinearScale,
    LogScale,
    compute_cell_size,
    create_labels,
)


@pytest.fixture
def engine(config):
    return LayoutEngine(config)


class TestCreateLabels:
    """Test node label elision."""

    def test_small_layer_gets_every_label(self):
        assert create_labels(4, "I") == ["I1", "I2", "I3", "I4"]

    def test_threshold_is_inclusive(self):
        assert len(create_labels(10, "H")) == 10

    def test_large_layer_is_elided(self):
        labels = create_labels(16, "H")
        assert labels == ["H1", "H2", "H3", ELLIPSIS, "H14", "H15", "H16"]

    def test_elided_layer_has_seven_entries(self):
        for count in (11, 50, 1000):
            labels = create_labels(count, "O")
            assert len(labels) == 7
            assert labels[3] == "..."
            assert labels[-1] == f"O{count}"

    def test_empty_layer(self):
        assert create_labels(0, "I") == []
        assert create_labels(-3, "I") == []


class TestMatrixLayout:
    """Test the weight and gradient diagrams."""

    @pytest.mark.parametrize("kind", [DiagramKind.WEIGHT_MATRIX, DiagramKind.GRADIENT_MATRIX])
    @pytest.mark.parametrize("sizes", [(2, 2, 1), (4, 8, 2), (8, 16, 8), (1, 1, 1)])
    def test_one_cell_per_matrix_entry(self, engine, kind, sizes):
        m, k, n = sizes
        geo = engine.layout(kind, sizes, 700, 500)
        assert len(geo.cells_in_group(0)) == m * k
        assert len(geo.cells_in_group(1)) == k * n

    @pytest.mark.parametrize("sizes", [(1, 1, 1), (4, 8, 2), (8, 16, 8), (16, 2, 16), (2, 64, 2)])
    @pytest.mark.parametrize("viewport", [(700, 500), (800, 500), (300, 900), (1200, 150)])
    def test_cells_inside_viewport(self, engine, sizes, viewport):
        width, height = viewport
        geo = engine.layout(DiagramKind.WEIGHT_MATRIX, sizes, width, height)
        for cell in geo.cells:
            assert cell.x >= 0 and cell.y >= 0
            assert cell.x + cell.size <= width + 1e-9
            assert cell.y + cell.size <= height + 1e-9

    def test_stages_do_not_overlap(self, engine):
        geo = engine.layout(DiagramKind.WEIGHT_MATRIX, (8, 16, 8), 700, 500)
        right_of_first = max(c.x + c.size for c in geo.cells_in_group(0))
        left_of_second = min(c.x for c in geo.cells_in_group(1))
        assert right_of_first <= left_of_second

    def test_uniform_cell_size(self, engine):
        geo = engine.layout(DiagramKind.GRADIENT_MATRIX, (4, 8, 2), 800, 500)
        assert {c.size for c in geo.cells} == {geo.cell_size}

    def test_cell_grid_positions(self, engine):
        geo = engine.layout(DiagramKind.WEIGHT_MATRIX, (2, 3, 1), 700, 500)
        first = geo.cells_in_group(0)
        assert [(c.row, c.col) for c in first] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
        assert first[1].x == pytest.approx(first[0].x + geo.cell_size)
        assert first[3].y == pytest.approx(first[0].y + geo.cell_size)

    def test_stage_titles(self, engine):
        geo = engine.layout(DiagramKind.WEIGHT_MATRIX, (4, 8, 2), 700, 500)
        texts = [label.text for label in geo.labels]
        assert "Input-Hidden Weights" in texts
        assert "Hidden-Output Weights" in texts

    def test_labels_elided_consistently(self, engine):
        geo = engine.layout(DiagramKind.GRADIENT_MATRIX, (4, 16, 2), 800, 500)
        texts = [label.text for label in geo.labels]
        assert texts.count("H1") == 2
        assert texts.count("H16") == 2
        assert "H8" not in texts
        assert texts.count(ELLIPSIS) == 2

    def test_cell_size_formula(self, engine):
        policy = POLICIES[DiagramKind.WEIGHT_MATRIX]
        size = compute_cell_size(700, 500, 8, policy)
        assert size == pytest.approx(min(700 / (2.5 * 8), 500 / 4.0))


class TestVectorLayout:
    """Test the activation diagram."""

    @pytest.mark.parametrize("sizes", [(2, 2, 1), (4, 8, 2), (8, 16, 8)])
    def test_one_cell_per_activation(self, engine, sizes):
        m, k, n = sizes
        geo = engine.layout(DiagramKind.ACTIVATION_VECTOR, sizes, 800, 200)
        assert len(geo.cells) == m + 2 * k + n
        assert [len(geo.cells_in_group(g)) for g in range(4)] == [m, k, k, n]

    def test_cells_inside_viewport(self, engine):
        geo = engine.layout(DiagramKind.ACTIVATION_VECTOR, (8, 16, 8), 800, 200)
        for cell in geo.cells:
            assert cell.x >= 0
            assert cell.x + cell.size <= 800 + 1e-9
            assert 0 <= cell.y and cell.y + cell.size <= 200 + 1e-9

    def test_cell_size_formula(self, engine):
        geo = engine.layout(DiagramKind.ACTIVATION_VECTOR, (4, 8, 2), 800, 200)
        assert geo.cell_size == pytest.approx(min(800 / (4 * 8), 200 / 2))

    def test_panel_titles(self, engine):
        geo = engine.layout(DiagramKind.ACTIVATION_VECTOR, (4, 8, 2), 800, 200)
        texts = [label.text for label in geo.labels]
        for title in ("Input", "Hidden (Pre-ReLU)", "Hidden (Post-ReLU)", "Output"):
            assert title in texts


class TestDegenerateLayout:
    """Test non-positive sizes and viewports."""

    @pytest.mark.parametrize("sizes", [(0, 8, 2), (4, 0, 2), (4, 8, 0), (-1, 8, 2)])
    def test_non_positive_layer_gives_empty_geometry(self, engine, sizes):
        for kind in (DiagramKind.WEIGHT_MATRIX, DiagramKind.GRADIENT_MATRIX, DiagramKind.ACTIVATION_VECTOR):
            geo = engine.layout(kind, sizes, 700, 500)
            assert geo.is_empty
            assert geo.labels == []

    def test_zero_viewport_gives_empty_geometry(self, engine):
        assert engine.layout(DiagramKind.WEIGHT_MATRIX, (4, 8, 2), 0, 500).is_empty

    def test_loss_curve_has_no_cells(self, engine):
        with pytest.raises(ValueError):
            engine.layout(DiagramKind.LOSS_CURVE, (4, 8, 2), 600, 400)


class TestScales:
    """Test loss curve axes."""

    def test_linear_scale_endpoints(self):
        scale = LinearScale(domain=(0, 99), range=(60, 580))
        assert scale(0) == pytest.approx(60)
        assert scale(99) == pytest.approx(580)

    def test_linear_ticks_are_nice(self):
        assert LinearScale(domain=(0, 100), range=(0, 1)).ticks(5) == [0, 20, 40, 60, 80, 100]

    def test_log_scale_maps_decades_evenly(self):
        scale = LogScale(domain=(0.01, 1.0), range=(340, 20))
        assert scale(0.01) == pytest.approx(340)
        assert scale(0.1) == pytest.approx(180)
        assert scale(1.0) == pytest.approx(20)

    def test_log_scale_clamps_non_positive(self):
        scale = LogScale(domain=(1e-12, 1.0), range=(340, 20), floor=1e-12)
        assert scale(0.0) == pytest.approx(340)
        assert scale(-5.0) == pytest.approx(340)
        assert math.isfinite(scale(float('nan')))

    def test_log_scale_degenerate_domain_is_widened(self):
        scale = LogScale.for_values([0.5, 0.5], range_=(100, 0))
        low, high = scale.domain
        assert low < 0.5 < high
        assert scale(0.5) == pytest.approx(50)

    def test_log_ticks_inside_domain(self):
        scale = LogScale.for_values([3e-4, 2.0], range_=(100, 0))
        ticks = scale.ticks(5)
        assert ticks
        assert all(scale.domain[0] <= t <= scale.domain[1] for t in ticks)

    def test_log_domain_includes_nan_as_floor(self):
        scale = LogScale.for_values([1.0, float('nan'), 0.1], range_=(340, 20), floor=1e-12)
        assert scale.domain == (1e-12, 1.0)
        assert scale(float('nan')) == pytest.approx(340)
