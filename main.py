#!/usr/bin/env python3
"""
MLP Training Visualizer - Main Entry Point
==========================================

Trains a one-hidden-layer perceptron and shows its weights, activations,
gradients and loss updating live.

Usage:
    # Visualize with default architecture (4 -> 8 -> 2)
    python main.py

    # Custom architecture, start immediately
    python main.py --m 8 --k 16 --n 4 --lr 0.01 --steps 1000 --autostart

    # Train without a window and log the results
    python main.py --headless --steps 200 --seed 42

The window shows:
    - Top left: Weight matrices (input-hidden, hidden-output)
    - Top right: Training loss on a log scale
    - Bottom left: Activation vectors (input, hidden pre/post ReLU, output)
    - Bottom right: Gradient matrices

Press:
    - SPACE: Start training
    - X: Stop the current run
    - M / K / N: Cycle input / hidden / output size
    - L: Cycle learning rate
    - T: Cycle step count
    - ESC or Q: Quit
"""

# Suppress pygame's pkg_resources deprecation warning (pygame issue #4557)
import warnings
warnings.filterwarnings("ignore", category=UserWarning, module="pygame.pkgdata")

import argparse
import sys
from typing import Dict, Optional, Tuple

from config import Config, NetworkParams
from mlpviz.ai.snapshot import ModelSnapshot
from mlpviz.ai.trainer import TrainingController
from mlpviz.utils.logger import LogLevel, get_log_path, get_logger, setup_logging
from mlpviz.visualizer.layout import DiagramKind

_logger = get_logger(__name__)

PANEL_TITLES = {
    DiagramKind.WEIGHT_MATRIX: "Weight Matrix Visualization",
    DiagramKind.LOSS_CURVE: "Training Loss",
    DiagramKind.ACTIVATION_VECTOR: "Activation Vectors",
    DiagramKind.GRADIENT_MATRIX: "Gradient Matrices",
}

# Key -> NetworkParams field cycled through Config.PARAM_OPTIONS
PARAM_KEYS = {
    'm': 'm',
    'k': 'k',
    'n': 'n',
    'l': 'lr',
    't': 'steps',
}


def cycle_param(params: NetworkParams, name: str, options: Dict[str, list]) -> NetworkParams:
    """Advance one param to the next configured option (wrapping around)."""
    choices = options[name]
    current = getattr(params, name)
    index = choices.index(current) + 1 if current in choices else 0
    return params.replace(**{name: choices[index % len(choices)]})


class VisualizerApp:
    """
    Main application: window, event loop, controller and diagrams.

    This class manages:
        - Pygame window and panel layout
        - The TrainingController (advanced one suspension point per frame)
        - Re-rendering the four diagrams after every state change
        - Pointer hover and keyboard input
    """

    def __init__(self, config: Config, params: NetworkParams):
        import pygame
        from mlpviz.visualizer.render import RenderPipeline
        from mlpviz.visualizer.surface import HoverTracker, PygameSurface
        from mlpviz.visualizer.tooltip import get_tooltip_coordinator

        self.pygame = pygame
        self.config = config

        pygame.init()
        pygame.display.set_caption("MLP Training Visualizer")
        self.screen = pygame.display.set_mode(
            (config.WINDOW_WIDTH, config.WINDOW_HEIGHT),
            pygame.RESIZABLE
        )
        self.clock = pygame.time.Clock()

        self.controller = TrainingController(config, params)
        self.tooltips = get_tooltip_coordinator()
        self.pipeline = RenderPipeline(config, self.tooltips)
        self.surface = PygameSurface(config)
        self.hover = HoverTracker()

        self.panels: Dict[DiagramKind, Tuple[Tuple[int, int], Tuple[int, int]]] = {}
        self._update_layout(config.WINDOW_WIDTH, config.WINDOW_HEIGHT)

        self.running = True
        self._dirty = True
        self.controller.subscribe(self._on_snapshot)

    def _on_snapshot(self, snapshot: ModelSnapshot) -> None:
        self._dirty = True

    def _update_layout(self, width: int, height: int) -> None:
        """Split the window into four panels: two columns, two rows."""
        col = width // 2
        top_h = int(height * 0.5)
        self.panels = {
            DiagramKind.WEIGHT_MATRIX: ((10, 30), (col - 20, top_h - 40)),
            DiagramKind.LOSS_CURVE: ((col + 10, 30), (col - 20, top_h - 110)),
            DiagramKind.ACTIVATION_VECTOR: ((10, top_h + 30), (col - 20, int(height * 0.25))),
            DiagramKind.GRADIENT_MATRIX: ((col + 10, top_h + 30), (col - 20, height - top_h - 40)),
        }
        self.status_origin = (col + 20, top_h - 70)
        self._dirty = True

    def _rerender(self) -> None:
        """Recompute every draw list from the current state."""
        params = self.controller.display_params
        for kind, (_, (width, height)) in self.panels.items():
            self.pipeline.render(
                kind,
                params,
                self.controller.snapshot,
                self.controller.loss_history,
                width=width,
                height=height,
            )
        self._dirty = False

    def _set_params(self, params: NetworkParams) -> None:
        self.controller.set_params(params)
        _logger.info(f"Params for next run: {params}")
        self._dirty = True

    def _handle_events(self) -> None:
        """Handle pygame events and keyboard input."""
        pygame = self.pygame
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                self._update_layout(event.w, event.h)

            elif event.type == pygame.WINDOWLEAVE:
                self.hover.reset()

            elif event.type == pygame.MOUSEMOTION:
                self._update_hover(event.pos)

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_ESCAPE, pygame.K_q):
                    self.running = False

                elif event.key == pygame.K_SPACE:
                    if self.controller.start():
                        self._dirty = True

                elif event.key == pygame.K_x:
                    self.controller.request_stop()

                else:
                    name = PARAM_KEYS.get(pygame.key.name(event.key))
                    if name is not None:
                        self._set_params(cycle_param(
                            self.controller.params, name, self.config.PARAM_OPTIONS
                        ))

    def _update_hover(self, pointer: Tuple[int, int]) -> None:
        panels = [
            (self.pipeline.draw_lists[kind], origin)
            for kind, (origin, _) in self.panels.items()
            if kind in self.pipeline.draw_lists
        ]
        self.hover.update(pointer, panels)

    def _refresh_hover(self) -> None:
        """Re-run hit testing after a redraw replaced the cells under a stationary pointer."""
        if self.pygame.mouse.get_focused():
            self._update_hover(self.pygame.mouse.get_pos())
        else:
            self.hover.reset()

    def _draw_status(self) -> None:
        font = self.surface.font(13)
        params = self.controller.params
        latest = self.controller.loss_history.latest
        lines = [
            f"m={params.m}  k={params.k}  n={params.n}  lr={params.lr}  steps={params.steps}",
            f"State: {self.controller.state.name}"
            + (f"   step {latest.step}   loss {latest.loss:.6f}" if latest else ""),
            "SPACE start   X stop   M/K/N/L/T change params   Q quit",
        ]
        x, y = self.status_origin
        for i, line in enumerate(lines):
            text = font.render(line, True, self.config.TEXT_COLOR)
            self.screen.blit(text, (x, y + i * 20))

    def _render_frame(self) -> None:
        self.screen.fill(self.config.BACKGROUND_COLOR)
        title_font = self.surface.font(15)

        for kind, (origin, _) in self.panels.items():
            title = title_font.render(PANEL_TITLES[kind], True, self.config.TEXT_COLOR)
            self.screen.blit(title, (origin[0], origin[1] - 24))
            draw_list = self.pipeline.draw_lists.get(kind)
            if draw_list is not None:
                self.surface.draw(self.screen, draw_list, origin)

        self._draw_status()
        self.surface.draw_tooltip(self.screen, self.tooltips.state)
        self.pygame.display.flip()

    def run(self) -> None:
        """Main loop: events, one controller suspension point, redraw."""
        try:
            while self.running:
                self._handle_events()

                if self.controller.is_running:
                    self.controller.advance()
                    self._dirty = True

                if self._dirty:
                    self._rerender()
                    self._refresh_hover()

                self._render_frame()
                self.clock.tick(self.config.FPS)
        finally:
            self.controller.request_stop()
            while self.controller.is_running:
                self.controller.advance()
            self.pygame.quit()


def run_headless(config: Config, params: NetworkParams) -> int:
    """Train without a window and log a summary. Returns a process exit code."""
    controller = TrainingController(config, params)

    def report(snapshot: ModelSnapshot) -> None:
        _logger.info(f"step {snapshot.step:>6} | loss {snapshot.loss:.6f}")

    controller.subscribe(report)
    if not controller.start():
        _logger.error(f"Cannot train with params {params}")
        return 1

    history = controller.run()
    latest = history.latest
    snapshot = controller.snapshot
    _logger.info(
        f"Done: {len(history)} steps, {len(controller.sample_steps)} snapshots, "
        f"final loss {latest.loss:.6f}" if latest else "Done: no steps run"
    )
    _logger.info(f"Input-hidden weights: {snapshot.input_hidden_weights.round(4).tolist()}")
    _logger.info(f"Hidden-output weights: {snapshot.hidden_output_weights.round(4).tolist()}")
    return 0


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    defaults = Config()
    parser = argparse.ArgumentParser(
        description="MLP Training Visualizer - watch a two-layer perceptron learn",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--m', type=int, default=defaults.INPUT_DIM, help='Input dimension')
    parser.add_argument('--k', type=int, default=defaults.HIDDEN_DIM, help='Hidden dimension')
    parser.add_argument('--n', type=int, default=defaults.OUTPUT_DIM, help='Output dimension')
    parser.add_argument('--lr', type=float, default=defaults.LEARNING_RATE, help='Learning rate')
    parser.add_argument('--steps', type=int, default=defaults.TRAIN_STEPS, help='Training steps per run')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible runs')
    parser.add_argument(
        '--headless', action='store_true',
        help='Train without a window and log the results'
    )
    parser.add_argument(
        '--autostart', action='store_true',
        help='Start training as soon as the window opens'
    )
    parser.add_argument(
        '--log-level', type=str, default=defaults.LOG_LEVEL,
        choices=[level.name for level in LogLevel],
        help='Console log verbosity'
    )
    parser.add_argument('--log-file', action='store_true', help='Also write logs to LOG_DIR')
    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)

    config = Config()
    config.SEED = args.seed
    config.LOG_LEVEL = args.log_level
    config.LOG_TO_FILE = args.log_file or config.LOG_TO_FILE

    setup_logging(
        log_dir=config.LOG_DIR,
        level=LogLevel.from_name(config.LOG_LEVEL),
        file_output=config.LOG_TO_FILE,
        force=True,
    )
    log_path = get_log_path()
    if log_path is not None:
        _logger.info(f"Writing logs to {log_path}")

    params = NetworkParams(m=args.m, k=args.k, n=args.n, lr=args.lr, steps=args.steps)

    if args.headless:
        return run_headless(config, params)

    app = VisualizerApp(config, params)
    if args.autostart:
        app.controller.start()
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
