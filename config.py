"""
Configuration file for the MLP Training Visualizer
===================================================

All network defaults, sampling cadence, diagram geometry and palette options
are centralized here. Modify these values to experiment with different
architectures and layouts.

Usage:
    from config import Config, NetworkParams
    cfg = Config()
    params = NetworkParams.from_config(cfg)
    print(params.m, params.k, params.n)
"""

from dataclasses import dataclass, field, replace as dc_replace
from typing import Dict, List, Tuple, Optional, Union
import torch


@dataclass(frozen=True)
class NetworkParams:
    """
    Architecture and optimizer settings for one training run.

    Immutable: a run keeps the params it was started with, and any change
    produces a new instance that takes effect on the next start.

    Attributes:
        m: Input dimension
        k: Hidden dimension
        n: Output dimension
        lr: Learning rate
        steps: Total optimizer steps
    """
    m: int
    k: int
    n: int
    lr: float
    steps: int

    @classmethod
    def from_config(cls, config: 'Config') -> 'NetworkParams':
        return cls(
            m=config.INPUT_DIM,
            k=config.HIDDEN_DIM,
            n=config.OUTPUT_DIM,
            lr=config.LEARNING_RATE,
            steps=config.TRAIN_STEPS,
        )

    def replace(self, **changes) -> 'NetworkParams':
        """Return a copy with the given fields changed."""
        return dc_replace(self, **changes)

    @property
    def layer_sizes(self) -> Tuple[int, int, int]:
        return (self.m, self.k, self.n)

    @property
    def is_valid(self) -> bool:
        """True when every layer, the step count and the learning rate are positive."""
        return min(self.m, self.k, self.n, self.steps) > 0 and self.lr > 0


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Neural Network - Layer sizes and optimizer defaults
    2. Training - Step count and sampling cadence
    3. Visualization - Viewports, palette and labels
    4. System - Hardware, seeding and logging
    """

    # =========================================================================
    # NEURAL NETWORK ARCHITECTURE
    # =========================================================================

    # Layer sizes: input (m) -> hidden (k, ReLU) -> output (n)
    INPUT_DIM: int = 4
    HIDDEN_DIM: int = 8
    OUTPUT_DIM: int = 2

    # Learning rate for plain SGD on mean squared error
    LEARNING_RATE: float = 0.001

    # =========================================================================
    # TRAINING CONTROL
    # =========================================================================

    # Optimizer steps per run
    TRAIN_STEPS: int = 500

    # Capture a snapshot and yield to the host after every Nth step (step 0 included)
    SAMPLE_EVERY: int = 10

    # Choices the host cycles through when the user changes a parameter
    PARAM_OPTIONS: Dict[str, List[Union[int, float]]] = field(default_factory=lambda: {
        'm': [1, 2, 4, 8],
        'k': [2, 4, 8, 16],
        'n': [1, 2, 4, 8],
        'lr': [0.1, 0.01, 0.001, 0.0001],
        'steps': [100, 500, 1000, 2000],
    })

    # =========================================================================
    # VISUALIZATION SETTINGS
    # =========================================================================

    # Viewport (width, height) per diagram
    WEIGHT_VIEWPORT: Tuple[int, int] = (700, 500)
    ACTIVATION_VIEWPORT: Tuple[int, int] = (800, 200)
    GRADIENT_VIEWPORT: Tuple[int, int] = (800, 500)
    LOSS_VIEWPORT: Tuple[int, int] = (600, 400)

    # Diverging palette: negative (cold) -> zero (white) -> positive (warm)
    COLOR_NEGATIVE: Tuple[int, int, int] = (0, 116, 217)      # Blue
    COLOR_ZERO: Tuple[int, int, int] = (255, 255, 255)       # White
    COLOR_POSITIVE: Tuple[int, int, int] = (255, 65, 54)     # Red

    # Color domains: gradients are typically an order of magnitude smaller
    WEIGHT_DOMAIN: Tuple[float, float, float] = (-1.0, 0.0, 1.0)
    GRADIENT_DOMAIN: Tuple[float, float, float] = (-0.1, 0.0, 0.1)

    # Layer label colors
    COLOR_INPUT: Tuple[int, int, int] = (255, 127, 14)       # Orange
    COLOR_HIDDEN: Tuple[int, int, int] = (44, 160, 44)       # Green
    COLOR_OUTPUT: Tuple[int, int, int] = (214, 39, 40)       # Red

    TEXT_COLOR: Tuple[int, int, int] = (33, 37, 41)
    CAPTION_COLOR: Tuple[int, int, int] = (108, 117, 125)
    LOSS_COLOR: Tuple[int, int, int] = (110, 122, 234)
    BACKGROUND_COLOR: Tuple[int, int, int] = (255, 255, 255)

    # Layers with more nodes than this show "first 3, ..., last 3" labels
    LABEL_ELISION_THRESHOLD: int = 10

    # Tooltip precision
    WEIGHT_DECIMALS: int = 4
    GRADIENT_DECIMALS: int = 6
    ACTIVATION_DECIMALS: int = 4

    # Losses at or below zero are clamped to this before log scaling
    LOSS_FLOOR: float = 1e-12

    # Host window
    WINDOW_WIDTH: int = 1500
    WINDOW_HEIGHT: int = 1000
    FPS: int = 60

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    # Force CPU device (the model is tiny, transfers dominate on accelerators)
    FORCE_CPU: bool = True

    @property
    def DEVICE(self) -> torch.device:
        """Auto-detect CUDA/CPU, or force CPU if configured."""
        if self.FORCE_CPU:
            return torch.device('cpu')
        if torch.cuda.is_available():
            return torch.device('cuda')
        return torch.device('cpu')

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_DIR: str = 'logs'
    LOG_TO_FILE: bool = False

    def __post_init__(self):
        """Validation of the values the components cannot recover from."""
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert self.TRAIN_STEPS > 0, "Train steps must be positive"
        assert self.SAMPLE_EVERY > 0, "Sample interval must be positive"
        assert self.LABEL_ELISION_THRESHOLD >= 7, "Elision threshold must leave room for 7 labels"
        for name in ('WEIGHT_VIEWPORT', 'ACTIVATION_VIEWPORT', 'GRADIENT_VIEWPORT', 'LOSS_VIEWPORT'):
            width, height = getattr(self, name)
            assert width > 0 and height > 0, f"{name} must have a positive size"


# Global config instance for easy importing
config = Config()


if __name__ == "__main__":
    # Print configuration summary
    cfg = Config()
    params = NetworkParams.from_config(cfg)
    print("=" * 60)
    print("MLP Training Visualizer - Configuration Summary")
    print("=" * 60)
    print(f"\nNetwork: {params.m} -> {params.k} (ReLU) -> {params.n}")
    print(f"Learning rate: {params.lr}")
    print(f"Steps: {params.steps} (sample every {cfg.SAMPLE_EVERY})")
    print(f"\nDevice: {cfg.DEVICE}")
    print("=" * 60)
