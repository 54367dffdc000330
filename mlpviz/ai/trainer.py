"""
Training Controller
===================

Orchestrates one training run of the MLP:
    1. Build the model, optimizer and the fixed input/target batch
    2. Run optimizer steps, recording the loss of each one
    3. Every SAMPLE_EVERY steps, capture and publish a ModelSnapshot
    4. Suspend after each sample so the host can repaint and handle input

The step loop is a generator. The host drives it with advance(), which runs
until the next suspension point, so everything stays on one thread and the
host's event loop is never starved. run() drives a whole run without a host.

State machine:
    IDLE -> RUNNING -> (SAMPLING -> RUNNING)* -> IDLE
                    \\-> CANCELLED -> IDLE   (after request_stop())
"""

import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Generator, Iterator, List, Optional

import torch

from config import Config, NetworkParams
from mlpviz.ai.network import MLP, build_optimizer, make_batch, train_step
from mlpviz.ai.snapshot import ModelSnapshot, capture, empty_snapshot
from mlpviz.utils.logger import get_logger, log_run_event, log_step_metrics

_logger = get_logger(__name__)


class TrainingState(Enum):
    """Controller state machine."""
    IDLE = auto()
    RUNNING = auto()
    SAMPLING = auto()
    CANCELLED = auto()


@dataclass(frozen=True)
class LossSample:
    """Loss of a single optimizer step."""
    step: int
    loss: float


class LossHistory:
    """
    Append-only loss trace of the current run.

    Steps must strictly increase. Only the controller appends; everything
    else reads.
    """

    def __init__(self):
        self._samples: List[LossSample] = []

    def append(self, sample: LossSample) -> None:
        if self._samples and sample.step <= self._samples[-1].step:
            raise ValueError(
                f"Loss samples must have increasing steps "
                f"(got {sample.step} after {self._samples[-1].step})"
            )
        self._samples.append(sample)

    def reset(self) -> None:
        self._samples = []

    def steps(self) -> List[int]:
        return [s.step for s in self._samples]

    def losses(self) -> List[float]:
        return [s.loss for s in self._samples]

    @property
    def latest(self) -> Optional[LossSample]:
        return self._samples[-1] if self._samples else None

    @property
    def min_loss(self) -> float:
        return min(self.losses()) if self._samples else 0.0

    @property
    def max_loss(self) -> float:
        return max(self.losses()) if self._samples else 0.0

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[LossSample]:
        return iter(list(self._samples))

    def __getitem__(self, index: int) -> LossSample:
        return self._samples[index]


SnapshotListener = Callable[[ModelSnapshot], None]


class TrainingController:
    """
    Drives the step loop and publishes snapshots.

    Responsibilities:
        1. Own the NetworkParams for the next run and pin them for the current one
        2. Record one LossSample per step
        3. Publish a fresh ModelSnapshot every SAMPLE_EVERY steps
        4. Yield to the host after every sampled step
        5. Honour stop requests before each step

    Example:
        >>> controller = TrainingController(Config())
        >>> controller.start()
        True
        >>> while controller.advance():
        ...     redraw(controller.snapshot)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        params: Optional[NetworkParams] = None
    ):
        """
        Initialize the controller.

        Args:
            config: Configuration object
            params: Params for the first run (defaults from config)
        """
        self.config = config or Config()
        self.params = params or NetworkParams.from_config(self.config)
        self.sample_every = self.config.SAMPLE_EVERY

        self._state = TrainingState.IDLE
        self._run_params: Optional[NetworkParams] = None
        self._loop: Optional[Generator[int, None, None]] = None
        self._stop_requested = False
        self.was_cancelled = False

        self.loss_history = LossHistory()
        self.sample_steps: List[int] = []
        self._snapshot: ModelSnapshot = empty_snapshot(self.params)
        self._listeners: List[SnapshotListener] = []

        self.run_started_at: Optional[float] = None
        self.runs_completed = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrainingState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in (TrainingState.RUNNING, TrainingState.SAMPLING)

    @property
    def snapshot(self) -> ModelSnapshot:
        """Most recently published snapshot (zero-filled before the first sample)."""
        return self._snapshot

    @property
    def run_params(self) -> Optional[NetworkParams]:
        """Params pinned by the in-flight run, if any."""
        return self._run_params

    @property
    def display_params(self) -> NetworkParams:
        """Params the published snapshot is shaped for."""
        if self.is_running and self._run_params is not None:
            return self._run_params
        return self.params

    @property
    def progress(self) -> float:
        if self._run_params is None or not self.loss_history:
            return 0.0
        return len(self.loss_history) / self._run_params.steps

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def subscribe(self, listener: SnapshotListener) -> None:
        """Call listener with every snapshot published from now on."""
        self._listeners.append(listener)

    def set_params(self, params: NetworkParams) -> None:
        """
        Replace the params for the next run.

        An in-flight run keeps the params it started with. While idle, the
        published snapshot is reset so diagrams never mix old and new shapes.
        """
        self.params = params
        if not self.is_running:
            self._snapshot = empty_snapshot(params)

    def start(self, params: Optional[NetworkParams] = None) -> bool:
        """
        Begin a new run.

        Args:
            params: Optional replacement params for this and later runs

        Returns:
            True if a run was started; False if one is already in progress or
            the params are not usable
        """
        if self.is_running:
            _logger.debug("start() ignored: a run is already in progress")
            return False

        if params is not None:
            self.set_params(params)

        if not self.params.is_valid:
            _logger.warning(f"Refusing to start with invalid params: {self.params}")
            log_run_event("refused", params=self.params)
            return False

        self._run_params = self.params
        self._stop_requested = False
        self.was_cancelled = False
        self.loss_history.reset()
        self.sample_steps = []
        self._snapshot = empty_snapshot(self._run_params)
        self._loop = self._step_loop(self._run_params)
        self.run_started_at = time.time()
        self._state = TrainingState.RUNNING

        p = self._run_params
        log_run_event("start", m=p.m, k=p.k, n=p.n, lr=p.lr, steps=p.steps)
        return True

    def request_stop(self) -> None:
        """Ask the in-flight run to stop before its next step."""
        if self.is_running:
            self._stop_requested = True

    def advance(self) -> bool:
        """
        Run steps until the next suspension point.

        Returns:
            True while the run continues; False once it has finished or been
            cancelled (the controller is IDLE again)

        Raises:
            RuntimeError: If no run is in progress
        """
        if self._loop is None:
            raise RuntimeError("No training run in progress. Call start() first.")

        try:
            next(self._loop)
        except StopIteration:
            self._loop = None
            return False
        return True

    def run(self) -> LossHistory:
        """Drive the current run (starting one if idle) to completion."""
        if not self.is_running and not self.start():
            return self.loss_history
        while self.advance():
            pass
        return self.loss_history

    # ------------------------------------------------------------------
    # Step loop
    # ------------------------------------------------------------------

    def _publish(self, snapshot: ModelSnapshot) -> None:
        self._snapshot = snapshot
        self.sample_steps.append(snapshot.step)
        for listener in self._listeners:
            listener(snapshot)

    def _step_loop(self, params: NetworkParams) -> Generator[int, None, None]:
        """
        One run as a generator; each yield is a suspension point.

        The model, optimizer and batch exist only inside this generator and
        are dropped in the finally block on completion or cancellation.
        """
        device = self.config.DEVICE
        generator = None
        if self.config.SEED is not None:
            torch.manual_seed(self.config.SEED)
            generator = torch.Generator().manual_seed(self.config.SEED)

        model = MLP.from_params(params).to(device)
        optimizer = build_optimizer(model, params.lr)
        xs, ys = make_batch(params, generator, device)

        try:
            for step in range(params.steps):
                if self._stop_requested:
                    self._state = TrainingState.CANCELLED
                    self.was_cancelled = True
                    log_run_event("cancelled", step=step, of=params.steps)
                    break

                loss = train_step(model, optimizer, xs, ys)
                self.loss_history.append(LossSample(step=step, loss=loss))

                sampled = step % self.sample_every == 0
                log_step_metrics(step, loss, sampled)

                if sampled:
                    self._state = TrainingState.SAMPLING
                    self._publish(capture(model, xs, ys, step=step))
                    self._state = TrainingState.RUNNING
                    yield step
            else:
                self.runs_completed += 1
                latest = self.loss_history.latest
                log_run_event(
                    "finished",
                    steps=len(self.loss_history),
                    final_loss=f"{latest.loss:.6f}" if latest else None,
                    duration=f"{time.time() - (self.run_started_at or time.time()):.2f}s",
                )
        finally:
            del model, optimizer, xs, ys
            self._stop_requested = False
            self._state = TrainingState.IDLE
