"""
MLP Training Visualizer - Source Package
========================================

Instruments the training of a one-hidden-layer perceptron and renders its
weights, activations, gradients and loss as synchronized diagrams.

Modules:
    ai/         - Collaborator model, snapshot capture and training controller
    visualizer/ - Layout, colors, tooltips, render pipeline and pygame surface
    utils/      - Logging
"""

__version__ = "1.0.0"
