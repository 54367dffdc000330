"""
Two-Layer Perceptron
====================

The differentiable collaborator whose internals get visualized.

Architecture:
    Input (m) -> Linear -> ReLU -> Hidden (k) -> Linear -> Output (n)

The network is trained by plain SGD on mean squared error against a fixed
target, one step at a time, so the visualizer can watch every tensor move.

Key Features:
    - Xavier initialization for stable training
    - Forward pass that also returns every intermediate activation
    - Single-step training helper returning the pre-update loss
"""

import torch
import torch.nn as nn
import torch.nn.functional as F
from typing import Dict, List, Optional, Tuple

from config import NetworkParams


class MLP(nn.Module):
    """
    One-hidden-layer perceptron with ReLU activation.

    Attributes:
        hidden (nn.Linear): Input -> hidden projection (weight shape k x m)
        output (nn.Linear): Hidden -> output projection (weight shape n x k)

    Example:
        >>> net = MLP(input_dim=4, hidden_dim=8, output_dim=2)
        >>> x = torch.randn(1, 4)
        >>> y = net(x)  # Shape: (1, 2)
    """

    def __init__(self, input_dim: int, hidden_dim: int, output_dim: int):
        """
        Initialize the MLP.

        Args:
            input_dim: Dimension of the input vector (m)
            hidden_dim: Number of hidden units (k)
            output_dim: Dimension of the output vector (n)
        """
        super(MLP, self).__init__()

        self.input_dim = input_dim
        self.hidden_dim = hidden_dim
        self.output_dim = output_dim

        self.hidden = nn.Linear(input_dim, hidden_dim)
        self.output = nn.Linear(hidden_dim, output_dim)

        self._init_weights()

    @classmethod
    def from_params(cls, params: NetworkParams) -> 'MLP':
        return cls(params.m, params.k, params.n)

    def _init_weights(self) -> None:
        """
        Initialize weights using Xavier/Glorot initialization.
        This helps with training stability.
        """
        for layer in (self.hidden, self.output):
            nn.init.xavier_uniform_(layer.weight)
            nn.init.constant_(layer.bias, 0.0)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            x: Input tensor of shape (batch_size, input_dim)

        Returns:
            Output tensor of shape (batch_size, output_dim)
        """
        return self.output(F.relu(self.hidden(x)))

    def forward_with_activations(self, x: torch.Tensor) -> Tuple[torch.Tensor, Dict[str, torch.Tensor]]:
        """
        Forward pass that also returns every intermediate tensor.

        Returns:
            (output, activations) where activations maps 'input', 'hidden_pre',
            'hidden_post' and 'output' to tensors of shape (batch_size, width)
        """
        hidden_pre = self.hidden(x)
        hidden_post = F.relu(hidden_pre)
        out = self.output(hidden_post)
        return out, {
            'input': x,
            'hidden_pre': hidden_pre,
            'hidden_post': hidden_post,
            'output': out,
        }

    def get_layer_info(self) -> List[Dict]:
        """
        Get information about each layer for visualization.

        Returns:
            List of dicts with layer metadata
        """
        return [
            {'name': 'Input', 'neurons': self.input_dim, 'type': 'input'},
            {'name': 'Hidden', 'neurons': self.hidden_dim, 'type': 'hidden'},
            {'name': 'Output', 'neurons': self.output_dim, 'type': 'output'},
        ]

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


def mse_loss(model: MLP, xs: torch.Tensor, ys: torch.Tensor) -> torch.Tensor:
    """Mean squared error between the model output and the targets."""
    return F.mse_loss(model(xs), ys)


def build_optimizer(model: MLP, lr: float) -> torch.optim.Optimizer:
    """Plain SGD with a fixed learning rate."""
    return torch.optim.SGD(model.parameters(), lr=lr)


def train_step(
    model: MLP,
    optimizer: torch.optim.Optimizer,
    xs: torch.Tensor,
    ys: torch.Tensor
) -> float:
    """
    Perform exactly one optimizer update.

    Returns:
        The loss measured before the update was applied
    """
    optimizer.zero_grad()
    loss = mse_loss(model, xs, ys)
    loss.backward()
    optimizer.step()
    return loss.item()


def make_batch(
    params: NetworkParams,
    generator: Optional[torch.Generator] = None,
    device: Optional[torch.device] = None
) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Draw the fixed input row and target row used for a whole run.

    Returns:
        (xs, ys) with shapes (1, m) and (1, n), standard normal entries
    """
    xs = torch.randn(1, params.m, generator=generator)
    ys = torch.randn(1, params.n, generator=generator)
    if device is not None:
        xs, ys = xs.to(device), ys.to(device)
    return xs, ys
