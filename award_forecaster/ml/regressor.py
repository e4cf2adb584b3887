"""
Monthly series regressors.

Model choice rationale
----------------------
The forecast engine only needs to extrapolate a short (3–36 point) monthly
series a few months forward. Both inputs are normalised before fitting
(time / max time, metric / max metric), so every model here works on values
of order 1.

  FeedForwardRegressor   Default. 1 → 32 → 16 → 1 network with tanh hidden
                         units, dropout 0.1 after the first hidden layer
                         (training only), MSE loss and Adam at lr 0.05.
                         Trained for ``min(250, 40 × n)`` epochs on shuffled
                         mini-batches of 32 (a single full batch for n ≤ 32).
                         Implemented directly on numpy: the network has ~600
                         parameters and trains in milliseconds.

  LeastSquaresRegressor  Closed-form straight line. Useful as a baseline and
                         for callers that need exactly reproducible output
                         across numpy versions.

Interface contract
------------------
All models implement:

  fit(xs: Sequence[float], ys: Sequence[float]) → None
  predict(x: float) → float

``predict`` returns the raw normalised estimate; denormalising and clamping
at zero is the engine's job. Every source of randomness goes through a
``numpy.random.Generator`` seeded from ``ModelConfig.seed``.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from award_forecaster.config import ModelConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class Regressor(Protocol):
    """Minimal fit/predict interface used by the forecast engine."""

    def fit(self, xs: Sequence[float], ys: Sequence[float]) -> None: ...

    def predict(self, x: float) -> float: ...


def _as_column(values: Sequence[float], name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).reshape(-1, 1)
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite values.")
    return arr


def _validate_training_data(xs: Sequence[float], ys: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    if len(xs) != len(ys):
        raise ValueError(f"xs and ys must have the same length; got {len(xs)} and {len(ys)}.")
    if len(xs) == 0:
        raise ValueError("Cannot fit a regressor on an empty series.")
    return _as_column(xs, "xs"), _as_column(ys, "ys")


class FeedForwardRegressor:
    """Small tanh MLP trained with Adam on mean squared error.

    Attributes:
        hidden_units:      Width of each hidden layer, e.g. ``[32, 16]``.
        dropout_rate:      Dropout applied to the first hidden layer while training.
        learning_rate:     Adam step size.
        max_epochs:        Hard epoch cap.
        epochs_per_sample: Epoch budget per training observation.
        batch_size:        Mini-batch size.
        seed:              Seed for weight init, dropout masks and shuffling.
    """

    _BETA1 = 0.9
    _BETA2 = 0.999
    _EPSILON = 1e-7

    def __init__(
        self,
        hidden_units: Sequence[int] = (32, 16),
        dropout_rate: float = 0.1,
        learning_rate: float = 0.05,
        max_epochs: int = 250,
        epochs_per_sample: int = 40,
        batch_size: int = 32,
        seed: int = 42,
    ) -> None:
        self.hidden_units = list(hidden_units)
        self.dropout_rate = dropout_rate
        self.learning_rate = learning_rate
        self.max_epochs = max_epochs
        self.epochs_per_sample = epochs_per_sample
        self.batch_size = max(1, batch_size)
        self.seed = seed
        self._params: list[np.ndarray] = []
        self._epochs_run = 0
        self._final_loss: Optional[float] = None

    @classmethod
    def from_config(cls, config: ModelConfig) -> "FeedForwardRegressor":
        return cls(
            hidden_units=config.hidden_units,
            dropout_rate=config.dropout_rate,
            learning_rate=config.learning_rate,
            max_epochs=config.max_epochs,
            epochs_per_sample=config.epochs_per_sample,
            batch_size=config.batch_size,
            seed=config.seed,
        )

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_fitted(self) -> bool:
        return bool(self._params)

    @property
    def epochs_run(self) -> int:
        return self._epochs_run

    @property
    def final_loss(self) -> Optional[float]:
        """Training MSE of the last epoch (normalised units)."""
        return self._final_loss

    def epochs_for(self, n_samples: int) -> int:
        """Epoch budget for a training set of ``n_samples`` observations."""
        return max(1, min(self.max_epochs, self.epochs_per_sample * n_samples))

    # ── Training ──────────────────────────────────────────────────────────────

    def fit(self, xs: Sequence[float], ys: Sequence[float]) -> None:
        """Train the network from scratch on ``(xs, ys)``.

        Raises:
            ValueError:         Mismatched, empty, or non-finite input.
            FloatingPointError: Training diverged (non-finite loss).
        """
        x, y = _validate_training_data(xs, ys)
        rng = np.random.default_rng(self.seed)
        self._params = self._init_params(rng)

        moments = [np.zeros_like(p) for p in self._params]
        velocities = [np.zeros_like(p) for p in self._params]
        step = 0
        n = x.shape[0]
        epochs = self.epochs_for(n)

        for epoch in range(epochs):
            order = rng.permutation(n)
            epoch_loss = 0.0
            for start in range(0, n, self.batch_size):
                idx = order[start:start + self.batch_size]
                loss, grads = self._loss_and_grads(x[idx], y[idx], rng)
                epoch_loss += loss * len(idx)

                step += 1
                lr_t = (
                    self.learning_rate
                    * math.sqrt(1.0 - self._BETA2 ** step)
                    / (1.0 - self._BETA1 ** step)
                )
                for p, g, m, v in zip(self._params, grads, moments, velocities):
                    m *= self._BETA1
                    m += (1.0 - self._BETA1) * g
                    v *= self._BETA2
                    v += (1.0 - self._BETA2) * g * g
                    p -= lr_t * m / (np.sqrt(v) + self._EPSILON)

            epoch_loss /= n
            if not math.isfinite(epoch_loss):
                self._params = []
                raise FloatingPointError(
                    f"Training diverged at epoch {epoch + 1}/{epochs} (loss={epoch_loss})."
                )

        self._epochs_run = epochs
        self._final_loss = epoch_loss
        logger.debug(
            "FeedForwardRegressor fit: n=%d epochs=%d loss=%.6f", n, epochs, epoch_loss
        )

    def _init_params(self, rng: np.random.Generator) -> list[np.ndarray]:
        """Glorot-uniform weights, zero biases."""
        sizes = [1, *self.hidden_units, 1]
        params: list[np.ndarray] = []
        for fan_in, fan_out in zip(sizes[:-1], sizes[1:]):
            limit = math.sqrt(6.0 / (fan_in + fan_out))
            params.append(rng.uniform(-limit, limit, size=(fan_in, fan_out)))
            params.append(np.zeros(fan_out))
        return params

    def _forward(
        self,
        x: np.ndarray,
        rng: Optional[np.random.Generator] = None,
    ) -> tuple[np.ndarray, list[np.ndarray], list[tuple[np.ndarray, Optional[np.ndarray]]]]:
        """Run the network; dropout is active only when ``rng`` is given.

        Returns:
            (output, layer_inputs, hidden_caches) where ``layer_inputs[i]`` is
            the input to layer ``i`` and ``hidden_caches[i]`` holds the tanh
            output and dropout mask of hidden layer ``i``.
        """
        layer_inputs = [x]
        caches: list[tuple[np.ndarray, Optional[np.ndarray]]] = []
        h = x
        n_hidden = len(self.hidden_units)
        for i in range(n_hidden):
            w, b = self._params[2 * i], self._params[2 * i + 1]
            a = np.tanh(h @ w + b)
            mask = None
            if rng is not None and i == 0 and self.dropout_rate > 0.0:
                keep = 1.0 - self.dropout_rate
                mask = (rng.random(a.shape) < keep) / keep
                h = a * mask
            else:
                h = a
            caches.append((a, mask))
            layer_inputs.append(h)
        out = h @ self._params[-2] + self._params[-1]
        return out, layer_inputs, caches

    def _loss_and_grads(
        self,
        x: np.ndarray,
        y: np.ndarray,
        rng: np.random.Generator,
    ) -> tuple[float, list[np.ndarray]]:
        out, layer_inputs, caches = self._forward(x, rng)
        n = x.shape[0]
        err = out - y
        loss = float(np.mean(err * err))

        grads: list[np.ndarray] = [np.empty(0)] * len(self._params)
        d = 2.0 * err / n
        grads[-2] = layer_inputs[-1].T @ d
        grads[-1] = d.sum(axis=0)
        d = d @ self._params[-2].T

        for i in reversed(range(len(self.hidden_units))):
            a, mask = caches[i]
            if mask is not None:
                d = d * mask
            d = d * (1.0 - a * a)
            grads[2 * i] = layer_inputs[i].T @ d
            grads[2 * i + 1] = d.sum(axis=0)
            if i > 0:
                d = d @ self._params[2 * i].T
        return loss, grads

    # ── Inference ─────────────────────────────────────────────────────────────

    def predict(self, x: float) -> float:
        """Predict the normalised metric for normalised time ``x``.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        return self.predict_many([x])[0]

    def predict_many(self, xs: Sequence[float]) -> list[float]:
        if not self.is_fitted:
            raise RuntimeError("Cannot predict with an unfitted FeedForwardRegressor.")
        out, _, _ = self._forward(_as_column(xs, "xs"))
        return [float(v) for v in out[:, 0]]


class LeastSquaresRegressor:
    """Ordinary least-squares line through the training points.

    With a single distinct x the slope is 0 and the line is the mean of ys.
    """

    def __init__(self) -> None:
        self._intercept: Optional[float] = None
        self._slope: float = 0.0

    @property
    def is_fitted(self) -> bool:
        return self._intercept is not None

    @property
    def slope(self) -> float:
        return self._slope

    def fit(self, xs: Sequence[float], ys: Sequence[float]) -> None:
        x, y = _validate_training_data(xs, ys)
        x_mean = float(x.mean())
        y_mean = float(y.mean())
        sxx = float(((x - x_mean) ** 2).sum())
        sxy = float(((x - x_mean) * (y - y_mean)).sum())
        self._slope = sxy / sxx if sxx > 0.0 else 0.0
        self._intercept = y_mean - self._slope * x_mean

    def predict(self, x: float) -> float:
        if self._intercept is None:
            raise RuntimeError("Cannot predict with an unfitted LeastSquaresRegressor.")
        return self._intercept + self._slope * x


def make_regressor(config: ModelConfig) -> Regressor:
    """Build the regressor selected by ``config.kind``."""
    if config.kind == "linear":
        return LeastSquaresRegressor()
    return FeedForwardRegressor.from_config(config)
