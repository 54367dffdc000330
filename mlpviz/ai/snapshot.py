"""
Model State Snapshots
=====================

Captures a consistent, detached copy of a live MLP's weights, activations
and gradients.

A snapshot is built in one pass from a single weight state:
    1. Read both weight matrices
    2. Run an extra forward pass to recover pre/post-ReLU activations
    3. Differentiate the MSE loss against the targets w.r.t. both matrices

All torch tensors touched along the way are registered with a TensorScope and
dropped when the capture returns, so nothing outlives the call. The published
snapshot only holds read-only numpy copies.

Weight layout:
    torch stores Linear.weight as (out, in). Snapshots transpose this so the
    flat arrays are row-major by source index: entry [i * k + j] is the weight
    from input i to hidden j (and [j * n + o] from hidden j to output o).
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import numpy as np
import torch
import torch.nn.functional as F

from config import NetworkParams
from mlpviz.ai.network import MLP
from mlpviz.utils.logger import get_logger

_logger = get_logger(__name__)


class TensorScope:
    """
    Tracks tensors acquired for one capture and releases them together.

    Callers drop their own references before the scope exits, so release()
    frees the last references and with them the autograd graph.

    Example:
        >>> with scoped_tensors() as scope:
        ...     w = scope.keep(model.hidden.weight)
        >>> scope.held
        0
    """

    def __init__(self):
        self._tensors: List[torch.Tensor] = []
        self.released = 0

    def keep(self, tensor: torch.Tensor) -> torch.Tensor:
        """Register a tensor with the scope and hand it back."""
        self._tensors.append(tensor)
        return tensor

    @property
    def held(self) -> int:
        return len(self._tensors)

    def release(self) -> None:
        self.released += len(self._tensors)
        self._tensors.clear()


@contextmanager
def scoped_tensors(scope: Optional[TensorScope] = None) -> Iterator[TensorScope]:
    """Yield a TensorScope (new or given) whose tensors are released on exit, even on error."""
    scope = scope or TensorScope()
    try:
        yield scope
    finally:
        scope.release()


def _frozen(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


def _to_vector(tensor: torch.Tensor) -> np.ndarray:
    """First batch row as a detached, read-only float64 copy."""
    row = tensor.detach()
    if row.dim() > 1:
        row = row[0]
    return _frozen(np.array(row.cpu().numpy(), dtype=np.float64))


def _to_flat_matrix(weight: torch.Tensor) -> np.ndarray:
    """(out, in) torch layout -> flat row-major (in, out) read-only copy."""
    return _frozen(np.array(weight.detach().t().cpu().numpy(), dtype=np.float64).reshape(-1))


def value_at(values: Sequence[float], index: int) -> float:
    """Entry at index, or 0 when the slot has not been populated."""
    if 0 <= index < len(values):
        return float(values[index])
    return 0.0


@dataclass(frozen=True)
class Activations:
    """Per-layer activation vectors for the first sample of the batch."""
    input: np.ndarray
    hidden_pre: np.ndarray
    hidden_post: np.ndarray
    output: np.ndarray


@dataclass(frozen=True)
class Gradients:
    """Flat row-major gradients of the MSE loss w.r.t. both weight matrices."""
    input_hidden: np.ndarray
    hidden_output: np.ndarray


@dataclass(frozen=True)
class ModelSnapshot:
    """
    Immutable record of the model at one point in time.

    Attributes:
        input_hidden_weights: m*k weights, row-major by input then hidden index
        hidden_output_weights: k*n weights, row-major by hidden then output index
        activations: Input, hidden pre/post-ReLU and output vectors
        gradients: Loss gradients with the same layout as the weights
        step: Training step the snapshot was taken after (-1 before training)
        loss: MSE at the captured weight state
    """
    input_hidden_weights: np.ndarray
    hidden_output_weights: np.ndarray
    activations: Activations
    gradients: Gradients
    step: int = -1
    loss: float = 0.0

    def __post_init__(self):
        m, k, n = self.m, self.k, self.n
        assert len(self.activations.hidden_post) == k, "hidden pre/post activations must have equal length"
        assert len(self.input_hidden_weights) == m * k, "input-hidden weights must have m*k entries"
        assert len(self.hidden_output_weights) == k * n, "hidden-output weights must have k*n entries"
        assert len(self.gradients.input_hidden) == m * k, "input-hidden gradients must have m*k entries"
        assert len(self.gradients.hidden_output) == k * n, "hidden-output gradients must have k*n entries"

    @property
    def m(self) -> int:
        return len(self.activations.input)

    @property
    def k(self) -> int:
        return len(self.activations.hidden_pre)

    @property
    def n(self) -> int:
        return len(self.activations.output)

    def matches(self, params: NetworkParams) -> bool:
        """True when the snapshot was taken from a model with these layer sizes."""
        return (self.m, self.k, self.n) == params.layer_sizes


def empty_snapshot(params: NetworkParams) -> ModelSnapshot:
    """Zero-filled snapshot shaped for params, used before training has run."""
    m, k, n = (max(size, 0) for size in params.layer_sizes)

    def zeros(size: int) -> np.ndarray:
        return _frozen(np.zeros(size, dtype=np.float64))

    return ModelSnapshot(
        input_hidden_weights=zeros(m * k),
        hidden_output_weights=zeros(k * n),
        activations=Activations(zeros(m), zeros(k), zeros(k), zeros(n)),
        gradients=Gradients(zeros(m * k), zeros(k * n)),
    )


def capture(
    model: MLP,
    inputs: torch.Tensor,
    targets: torch.Tensor,
    step: int = -1,
    scope: Optional[TensorScope] = None
) -> ModelSnapshot:
    """
    Capture weights, activations and gradients from one weight state.

    Gradients come from torch.autograd.grad, so parameter .grad buffers (and
    therefore the optimizer) are never touched.

    Args:
        model: The live network
        inputs: Input batch of shape (batch, m)
        targets: Target batch of shape (batch, n)
        step: Training step the capture follows
        scope: Scope to register tensors with (a fresh one is used by default)

    Returns:
        A fully populated ModelSnapshot
    """
    with scoped_tensors(scope) as scope:
        with torch.enable_grad():
            w_in = scope.keep(model.hidden.weight)
            w_out = scope.keep(model.output.weight)

            output, acts = model.forward_with_activations(inputs)
            for name in acts:
                scope.keep(acts[name])

            loss = scope.keep(F.mse_loss(output, targets))
            grad_in, grad_out = torch.autograd.grad(loss, [w_in, w_out])
            scope.keep(grad_in)
            scope.keep(grad_out)

        snapshot = ModelSnapshot(
            input_hidden_weights=_to_flat_matrix(w_in),
            hidden_output_weights=_to_flat_matrix(w_out),
            activations=Activations(
                input=_to_vector(acts['input']),
                hidden_pre=_to_vector(acts['hidden_pre']),
                hidden_post=_to_vector(acts['hidden_post']),
                output=_to_vector(acts['output']),
            ),
            gradients=Gradients(
                input_hidden=_to_flat_matrix(grad_in),
                hidden_output=_to_flat_matrix(grad_out),
            ),
            step=step,
            loss=loss.item(),
        )
        # Drop local references so the scope holds the last ones to the graph
        del w_in, w_out, output, acts, loss, grad_in, grad_out

    _logger.debug(f"Captured snapshot at step {step} (loss={snapshot.loss:.6f})")
    return snapshot
