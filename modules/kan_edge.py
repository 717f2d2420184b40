import math
from typing import Optional, Tuple

import numpy as np

from .learnable_function import LearnableFunction


class ActivationHistogram:
    """
    Fixed-bin histogram of values seen by an edge.

    Values outside the display range land in the first/last bin. The observed
    min/max is tracked separately so the range can be widened on request.
    """

    def __init__(self, bins: int = 20, value_range: Tuple[float, float] = (-1.0, 1.0),
                 decay: float = 1.0):
        self.bins = int(bins)
        self.value_range = (float(value_range[0]), float(value_range[1]))
        self.decay = float(decay)
        self.reset()

    def reset(self):
        self.counts = np.zeros(self.bins)
        self.observed_min = math.inf
        self.observed_max = -math.inf

    def record(self, value: float):
        self.observed_min = min(self.observed_min, value)
        self.observed_max = max(self.observed_max, value)

        if self.decay < 1.0:
            self.counts *= self.decay

        lo, hi = self.value_range
        value = max(lo, min(hi, value))
        bin_width = (hi - lo) / self.bins
        index = int(math.floor((value - lo) / bin_width)) if bin_width > 0 else 0
        self.counts[max(0, min(self.bins - 1, index))] += 1

    def normalized(self) -> np.ndarray:
        return self.counts / max(self.counts.max(), 1)

    def std(self) -> float:
        """Standard deviation estimated from bin centres."""
        total = self.counts.sum()
        if total == 0:
            return 0.0
        lo, hi = self.value_range
        bin_width = (hi - lo) / self.bins
        centres = lo + (np.arange(self.bins) + 0.5) * bin_width
        mean = (centres * self.counts).sum() / total
        variance = (((centres - mean) ** 2) * self.counts).sum() / total
        return float(math.sqrt(variance))

    @property
    def observed_range(self) -> Tuple[float, float]:
        return (self.observed_min, self.observed_max)

    def adapt_range(self, padding: float = 0.1):
        """Widen the display range to the observed range plus padding."""
        if self.observed_min < math.inf and self.observed_max > -math.inf:
            pad = (self.observed_max - self.observed_min) * padding
            self.value_range = (self.observed_min - pad, self.observed_max + pad)


class KANEdge:
    """
    Connection between two nodes carrying a learnable spline.

    Args:
        source, dest: KANNode endpoints (back-references only)
        grid_size, degree, init, domain: passed to LearnableFunction
        fan_in, fan_out: Layer fan hints for initialization
        histogram_bins: Bins for both activation histograms
        input_range, output_range: Initial histogram ranges
        input_decay, output_decay: Per-record bin decay (1.0 = none)
        rng: numpy Generator for initialization
    """

    def __init__(self, source, dest,
                 grid_size: int = 5,
                 degree: int = 3,
                 init=0.3,
                 fan_in: int = 1,
                 fan_out: int = 1,
                 domain: Tuple[float, float] = (-1.0, 1.0),
                 histogram_bins: int = 20,
                 input_range: Tuple[float, float] = (-1.0, 1.0),
                 output_range: Tuple[float, float] = (-2.0, 2.0),
                 input_decay: float = 1.0,
                 output_decay: float = 1.0,
                 rng: Optional[np.random.Generator] = None):
        self.id = f"{source.id}-{dest.id}"
        self.source = source
        self.dest = dest
        self.function = LearnableFunction(
            self.id, grid_size=grid_size, domain=domain, degree=degree,
            init=init, fan_in=fan_in, fan_out=fan_out, rng=rng
        )
        self.last_input = 0.0
        self.is_active = True

        self.acc_gradients = np.zeros(self.function.num_control_points)
        self.num_accumulated = 0

        self.input_histogram = ActivationHistogram(histogram_bins, input_range, input_decay)
        self.output_histogram = ActivationHistogram(histogram_bins, output_range, output_decay)

    # -------------------------------------------------------------------------
    # Read accessors for visualization
    # -------------------------------------------------------------------------

    @property
    def control_points(self) -> np.ndarray:
        return self.function.control_points

    @property
    def knot_vector(self) -> np.ndarray:
        return self.function.knot_vector

    @property
    def degree(self) -> int:
        return self.function.degree

    def normalized_input_histogram(self) -> np.ndarray:
        return self.input_histogram.normalized()

    def normalized_output_histogram(self) -> np.ndarray:
        return self.output_histogram.normalized()

    def input_activation_std(self) -> float:
        return self.input_histogram.std()

    def output_activation_std(self) -> float:
        return self.output_histogram.std()

    def observed_input_range(self) -> Tuple[float, float]:
        return self.input_histogram.observed_range

    def observed_output_range(self) -> Tuple[float, float]:
        return self.output_histogram.observed_range

    def enable_adaptive_ranges(self):
        self.input_histogram.adapt_range()
        self.output_histogram.adapt_range()

    def reset_histogram(self):
        self.input_histogram.reset()
        self.output_histogram.reset()

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def forward(self, x: float, record_histogram: bool = True) -> float:
        self.last_input = x
        if not self.is_active:
            return 0.0

        if record_histogram:
            self.input_histogram.record(x)
        y = self.function.evaluate(x)
        if record_histogram:
            self.output_histogram.record(y)
        return y

    def accumulate_gradients(self, output_gradient: float):
        """Add output_gradient * dphi/dc at the last input to the running sum."""
        if not self.is_active:
            return
        self.acc_gradients += output_gradient * self.function.get_control_point_gradients(self.last_input)
        self.num_accumulated += 1

    def update_parameters(self, learning_rate: float):
        """Apply the mean accumulated gradient, then clear the accumulator."""
        if not self.is_active or self.num_accumulated == 0:
            return
        self.function.update_parameters(self.acc_gradients / self.num_accumulated, learning_rate)
        self.acc_gradients[:] = 0.0
        self.num_accumulated = 0

    def __repr__(self):
        return f"KANEdge({self.id!r}, active={self.is_active})"
