"""
AI Module
=========

The trained network and the instrumentation around it.

Classes:
    MLP                - One-hidden-layer ReLU perceptron (torch)
    ModelSnapshot      - Immutable copy of weights, activations and gradients
    TrainingController - Step loop with sampling and cooperative suspension
"""

from .network import MLP
from .snapshot import ModelSnapshot, capture, empty_snapshot
from .trainer import TrainingController, TrainingState, LossHistory, LossSample

__all__ = [
    'MLP', 'ModelSnapshot', 'capture', 'empty_snapshot',
    'TrainingController', 'TrainingState', 'LossHistory', 'LossSample',
]
