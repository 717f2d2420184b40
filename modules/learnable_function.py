"""
Learnable univariate function represented as a clamped B-spline.

Each KAN edge owns one of these. The control points are the trainable
weights; the knot vector is fixed for the lifetime of the function.
"""

import math
import numbers
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

import numpy as np

from utils.spline_utils import basis_moments, clamped_knot_vector


# =============================================================================
# INITIALIZATION SCHEMES
# =============================================================================

class SchemeKind(str, Enum):
    XAVIER = "xavier"
    KAIMING = "kaiming"
    LECUN = "lecun"
    GLOROT_BASIS = "glorot"


@dataclass(frozen=True)
class FixedNoise:
    """Control points drawn i.i.d. from U(-noise/2, noise/2)."""
    noise: float = 0.3


@dataclass(frozen=True)
class LinearInit:
    """Identity (or negative identity) ramp scaled by the He limit."""


@dataclass(frozen=True)
class NamedScheme:
    kind: SchemeKind
    gain: float = 1.0
    num_samples: int = 10000


InitScheme = Union[FixedNoise, LinearInit, NamedScheme]


def parse_init_scheme(value) -> InitScheme:
    """
    Turn a number, a scheme name or an existing scheme into an InitScheme.

    Example:
        >>> parse_init_scheme(0.3)
        FixedNoise(noise=0.3)
        >>> parse_init_scheme("linear")
        LinearInit()
    """
    if isinstance(value, (FixedNoise, LinearInit, NamedScheme)):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Unknown init scheme: {value!r}")
    if isinstance(value, numbers.Real):
        return FixedNoise(float(value))
    if isinstance(value, SchemeKind):
        return NamedScheme(value)
    if isinstance(value, str):
        name = value.strip().lower()
        if name == "linear":
            return LinearInit()
        try:
            return NamedScheme(SchemeKind(name))
        except ValueError:
            pass
        try:
            return FixedNoise(float(name))
        except ValueError:
            pass
    raise ValueError(f"Unknown init scheme: {value!r}")


def _box_muller(rng: np.random.Generator, size: int) -> np.ndarray:
    """Standard normal samples from pairs of uniforms."""
    u1 = 1.0 - rng.random(size)  # (0, 1]
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * math.pi * u2)


# =============================================================================
# LEARNABLE FUNCTION
# =============================================================================

class LearnableFunction:
    """
    Clamped B-spline phi(x) = sum_m c_m * B_m(x) on [min, max].

    Args:
        id: Identifier, usually the owning edge id
        grid_size: G; the spline has G + 1 control points
        domain: (min, max) input range; inputs are clamped into it
        degree: Spline degree p, clamped to G - 1
        init: Initialization scheme (number, name or InitScheme)
        fan_in, fan_out: Layer fan hints, only used at initialization
        rng: numpy Generator for reproducible initialization
    """

    def __init__(self,
                 id: str,
                 grid_size: int = 5,
                 domain: Tuple[float, float] = (-1.0, 1.0),
                 degree: int = 3,
                 init=0.3,
                 fan_in: int = 1,
                 fan_out: int = 1,
                 rng: Optional[np.random.Generator] = None):
        if grid_size < 1:
            raise ValueError(f"grid_size must be >= 1, got {grid_size}")
        self.id = id
        self.grid_size = int(grid_size)
        self.degree = max(0, min(int(degree), self.grid_size - 1))
        self.domain = (float(domain[0]), float(domain[1]))
        self.init = parse_init_scheme(init)
        self.fan_in = max(1, int(fan_in))
        self.fan_out = max(1, int(fan_out))
        self.rng = rng if rng is not None else np.random.default_rng()

        self.knot_vector = clamped_knot_vector(self.num_control_points, self.degree, self.domain)
        self.control_points = self._init_control_points()

    @property
    def num_control_points(self) -> int:
        return self.grid_size + 1

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def _init_control_points(self) -> np.ndarray:
        n = self.num_control_points
        init = self.init

        if isinstance(init, FixedNoise):
            return (self.rng.random(n) - 0.5) * init.noise

        if isinstance(init, LinearInit):
            limit = math.sqrt(2.0 / self.fan_in)
            ramp = np.linspace(-limit, limit, n)
            return ramp if self.rng.random() < 0.5 else -ramp

        if init.kind == SchemeKind.GLOROT_BASIS:
            return self._glorot_basis_init(init)

        if init.kind == SchemeKind.XAVIER:
            limit = math.sqrt(6.0 / (self.fan_in + self.fan_out))
        elif init.kind == SchemeKind.KAIMING:
            limit = math.sqrt(2.0 / self.fan_in)
        else:
            limit = math.sqrt(3.0 / self.fan_in)
        return self.rng.uniform(-limit, limit, n)

    def _glorot_basis_init(self, init: NamedScheme) -> np.ndarray:
        """
        Per-control-point variance preserving init.

        sigma_m = gain * sqrt((1/D) * 2 / (fan_in * E[B_m^2] + fan_out * E[B_m'^2]))
        """
        n = self.num_control_points
        mu0, mu1 = basis_moments(self.grid_size, self.degree, self.domain, init.num_samples)

        denom = self.fan_in * mu0 + self.fan_out * mu1
        fallback = math.sqrt(2.0 / (self.fan_in + self.fan_out))
        sigma = np.full(n, fallback)
        valid = denom > 0
        if not valid.all():
            warnings.warn(f"{self.id}: degenerate basis moments, using Glorot bound for "
                          f"{int((~valid).sum())} control point(s)")
        sigma[valid] = init.gain * np.sqrt((1.0 / n) * (2.0 / denom[valid]))

        return sigma * _box_muller(self.rng, n)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def _clamp(self, x: float) -> float:
        lo, hi = self.domain
        return max(lo, min(hi, float(x)))

    def find_knot_span(self, x: float) -> int:
        """Index s with knots[s] <= x < knots[s + 1], for clamped x."""
        n = self.num_control_points - 1
        p = self.degree
        knots = self.knot_vector

        if x >= knots[n + 1]:
            return n
        if x <= knots[p]:
            return p
        return int(np.searchsorted(knots, x, side="right")) - 1

    def evaluate(self, x: float) -> float:
        """Evaluate the spline at x using de Boor's algorithm."""
        x = self._clamp(x)
        s = self.find_knot_span(x)
        p = self.degree
        knots = self.knot_vector

        d = [float(self.control_points[s - p + j]) for j in range(p + 1)]
        for r in range(1, p + 1):
            for j in range(p, r - 1, -1):
                left = knots[s - p + j]
                den = knots[s + j - r + 1] - left
                alpha = (x - left) / den if den > 0 else 0.0
                d[j] = (1.0 - alpha) * d[j - 1] + alpha * d[j]
        return d[p]

    def derivative(self, x: float, h: float = 1e-6) -> float:
        """Central finite difference of evaluate, clamped to the domain."""
        lo, hi = self.domain
        x1 = max(lo, x - h)
        x2 = min(hi, x + h)
        if x2 - x1 < 1e-10:
            return 0.0
        return (self.evaluate(x2) - self.evaluate(x1)) / (x2 - x1)

    def basis_functions(self, span: int, x: float) -> List[float]:
        """
        The p + 1 non-zero basis values at x on the given span
        (triangular Cox-de Boor recurrence).
        """
        p = self.degree
        knots = self.knot_vector
        basis = [0.0] * (p + 1)
        left = [0.0] * (p + 1)
        right = [0.0] * (p + 1)
        basis[0] = 1.0

        for j in range(1, p + 1):
            left[j] = x - knots[span + 1 - j]
            right[j] = knots[span + j] - x
            saved = 0.0
            for r in range(j):
                den = right[r + 1] + left[j - r]
                temp = basis[r] / den if den != 0 else 0.0
                basis[r] = saved + right[r + 1] * temp
                saved = left[j - r] * temp
            basis[j] = saved
        return basis

    def get_control_point_gradients(self, x: float) -> np.ndarray:
        """
        d evaluate(x) / d control_points[m] = B_m(x).

        Returns:
            (num_control_points,) array, non-zero only on the active span
        """
        x = self._clamp(x)
        s = self.find_knot_span(x)
        p = self.degree
        gradients = np.zeros(self.num_control_points)
        for j, value in enumerate(self.basis_functions(s, x)):
            index = s - p + j
            if 0 <= index < gradients.shape[0]:
                gradients[index] = value
        return gradients

    def update_parameters(self, gradients, learning_rate: float) -> None:
        """In-place gradient step c -= lr * g over the overlapping length."""
        gradients = np.asarray(gradients, dtype=np.float64)
        n = min(self.control_points.shape[0], gradients.shape[0])
        self.control_points[:n] -= learning_rate * gradients[:n]

    def __repr__(self):
        return (f"LearnableFunction(id={self.id!r}, grid_size={self.grid_size}, "
                f"degree={self.degree}, domain={self.domain})")
