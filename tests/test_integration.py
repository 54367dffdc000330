"""
Integration tests across the full pipeline.

These tests verify that the controller, snapshots and render pipeline work
together, and that the command line entry point runs end to end.
"""

import logging

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config, NetworkParams
from main import VisualizerApp, cycle_param, main, parse_args, run_headless
from mlpviz.ai.trainer import TrainingController, TrainingState
from mlpviz.utils.logger import LogLevel, get_log_path, setup_logging
from mlpviz.visualizer.layout import DiagramKind
from mlpviz.visualizer.render import RenderPipeline
from mlpviz.visualizer.tooltip import TooltipCoordinator, get_tooltip_coordinator


class TestEndToEnd:
    """Train, snapshot and render together."""

    def test_small_run(self, config, small_params):
        controller = TrainingController(config, small_params)
        history = controller.run()

        assert len(history) == 5
        assert controller.sample_steps == [0]
        assert len(controller.snapshot.input_hidden_weights) == 4
        assert len(controller.snapshot.hidden_output_weights) == 2
        assert controller.state is TrainingState.IDLE

    def test_redraw_on_every_snapshot(self, config):
        """A listener re-rendering each snapshot always sees matching shapes."""
        params = NetworkParams(3, 4, 2, 0.01, 50)
        controller = TrainingController(config, params)
        pipeline = RenderPipeline(config, TooltipCoordinator(config))
        fills = []

        def redraw(snapshot):
            draw_list = pipeline.render(DiagramKind.WEIGHT_MATRIX, controller.display_params, snapshot)
            assert len(draw_list.rects()) == 3 * 4 + 4 * 2
            fills.append({rect.fill for rect in draw_list.rects()})

        controller.subscribe(redraw)
        controller.run()
        assert len(fills) == 5
        assert fills[-1] != {(255, 255, 255)}

    def test_host_loop_with_param_change(self, config):
        """Change the architecture between runs the way the app does."""
        controller = TrainingController(config, NetworkParams(4, 8, 2, 0.01, 20))
        pipeline = RenderPipeline(config, TooltipCoordinator(config))

        controller.start()
        while controller.advance():
            pipeline.render_all(controller.display_params, controller.snapshot, controller.loss_history)

        controller.set_params(cycle_param(controller.params, 'k', config.PARAM_OPTIONS))
        lists = pipeline.render_all(controller.display_params, controller.snapshot, controller.loss_history)
        assert len(lists[DiagramKind.WEIGHT_MATRIX].rects()) == 4 * 16 + 16 * 2
        assert len(lists[DiagramKind.ACTIVATION_VECTOR].rects()) == 4 + 16 + 16 + 2

    def test_snapshot_weights_differ_from_initial(self, config, small_params):
        controller = TrainingController(config, small_params.replace(steps=25))
        seen = []
        controller.subscribe(lambda snap: seen.append(snap.input_hidden_weights))
        controller.run()
        assert len(seen) == 3
        assert not np.array_equal(seen[0], seen[-1])


class TestCommandLine:
    """Test the entry point helpers."""

    def test_cycle_param_wraps(self):
        options = Config().PARAM_OPTIONS
        params = NetworkParams(8, 8, 2, 0.001, 500)
        assert cycle_param(params, 'm', options).m == 1
        assert cycle_param(params, 'k', options).k == 16
        assert cycle_param(params, 'lr', options).lr == 0.0001

    def test_cycle_unknown_value_starts_over(self):
        options = Config().PARAM_OPTIONS
        assert cycle_param(NetworkParams(3, 8, 2, 0.001, 500), 'm', options).m == 1

    def test_parse_args_defaults(self):
        args = parse_args([])
        assert (args.m, args.k, args.n) == (4, 8, 2)
        assert args.lr == 0.001
        assert args.steps == 500
        assert not args.headless

    def test_parse_args_overrides(self):
        args = parse_args(['--m', '2', '--lr', '0.1', '--headless', '--seed', '7'])
        assert args.m == 2
        assert args.lr == 0.1
        assert args.headless
        assert args.seed == 7

    def test_run_headless(self, config, small_params):
        assert run_headless(config, small_params) == 0

    def test_run_headless_invalid(self, config):
        assert run_headless(config, NetworkParams(0, 2, 1, 0.01, 5)) == 1

    @pytest.mark.slow
    def test_main_headless(self):
        argv = ['--headless', '--m', '2', '--k', '3', '--n', '1', '--steps', '40', '--seed', '3']
        assert main(argv) == 0

    def test_main_reports_log_file(self, tmp_path, monkeypatch, caplog):
        monkeypatch.chdir(tmp_path)
        argv = ['--headless', '--log-file', '--m', '2', '--k', '2', '--n', '1', '--steps', '5']
        try:
            with caplog.at_level(logging.INFO):
                assert main(argv) == 0
            log_path = get_log_path()
            assert log_path is not None
            assert log_path.parent == tmp_path / 'logs'
            assert log_path.exists()
            assert f"Writing logs to {log_path}" in caplog.text
        finally:
            setup_logging(level=LogLevel.INFO, force=True)
        assert get_log_path() is None


class TestVisualizerApp:
    """Test the pygame host against the dummy video driver."""

    @pytest.fixture
    def app(self, config, small_params):
        app = VisualizerApp(config, small_params)
        app._rerender()
        yield app
        app.pygame.quit()

    def cell_center(self, app):
        (ox, oy), _ = app.panels[DiagramKind.WEIGHT_MATRIX]
        rect = app.pipeline.draw_lists[DiagramKind.WEIGHT_MATRIX].rects()[0]
        return (int(ox + rect.x + rect.width / 2), int(oy + rect.y + rect.height / 2))

    def test_refresh_hover_with_focus(self, app, monkeypatch):
        pos = self.cell_center(app)
        monkeypatch.setattr(app.pygame.mouse, 'get_focused', lambda: True)
        monkeypatch.setattr(app.pygame.mouse, 'get_pos', lambda: pos)

        app._refresh_hover()
        assert get_tooltip_coordinator().state.visible
        assert get_tooltip_coordinator().state.text == "Weight[1,1]: 0.0000"

    def test_refresh_hover_after_pointer_left_window(self, app, monkeypatch):
        pos = self.cell_center(app)
        app._update_hover(pos)
        assert get_tooltip_coordinator().state.visible

        monkeypatch.setattr(app.pygame.mouse, 'get_focused', lambda: False)
        monkeypatch.setattr(app.pygame.mouse, 'get_pos', lambda: pos)
        app._refresh_hover()
        assert not get_tooltip_coordinator().state.visible
        assert app.hover.current is None
