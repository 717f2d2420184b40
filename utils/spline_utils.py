import functools

import numpy as np
import torch


def clamped_knot_vector(num_control_points, degree, domain=(-1.0, 1.0)):
    """
    Build a clamped, uniform knot vector.

    Args:
        num_control_points: Number of control points (grid_size + 1)
        degree: Spline degree p
        domain: (min, max) input range
    Returns:
        knots: (num_control_points + degree + 1,) numpy array
    """
    lo, hi = float(domain[0]), float(domain[1])
    num_knots = num_control_points + degree + 1
    num_internal = num_knots - 2 * (degree + 1)

    internal = [lo + (hi - lo) * i / (num_internal + 1) for i in range(1, num_internal + 1)]
    knots = [lo] * (degree + 1) + internal + [hi] * (degree + 1)
    return np.asarray(knots, dtype=np.float64)


def B_batch(x, knots, k=3):
    """
    Compute B-spline basis functions on a clamped knot vector.

    Args:
        x: (...) input points, already clamped into [knots[0], knots[-1]]
        knots: (num_control_points + k + 1,) knot vector
        k: spline degree
    Returns:
        splines: (..., num_control_points)
    """
    knots = torch.as_tensor(knots, dtype=torch.float64)
    x = torch.as_tensor(x, dtype=torch.float64).unsqueeze(-1)
    num_control_points = knots.shape[0] - k - 1

    # 0-th degree B-splines, (..., num_knots - 1)
    value = ((x >= knots[:-1]) & (x < knots[1:])).to(x.dtype)
    # Right end of the domain belongs to the last non-empty span
    at_end = (x[..., 0] >= knots[-1]).to(x.dtype)
    value[..., num_control_points - 1] = torch.maximum(value[..., num_control_points - 1], at_end)

    # Recursive Cox-de Boor formula; repeated knots contribute zero
    for p in range(1, k + 1):
        left_den = knots[p:-1] - knots[:-(p + 1)]
        right_den = knots[p + 1:] - knots[1:-p]
        left = torch.where(left_den > 0, (x - knots[:-(p + 1)]) / torch.where(left_den > 0, left_den, torch.ones_like(left_den)), torch.zeros_like(x))
        right = torch.where(right_den > 0, (knots[p + 1:] - x) / torch.where(right_den > 0, right_den, torch.ones_like(right_den)), torch.zeros_like(x))
        value = left * value[..., :-1] + right * value[..., 1:]

    return value


def coef2curve(x_eval, knots, coef, k):
    """
    Convert spline coefficients to curve values.

    Args:
        x_eval: (batch,) input points
        knots: knot vector
        coef: (num_control_points,) control points
        k: spline degree
    Returns:
        y: (batch,) numpy array
    """
    lo, hi = float(knots[0]), float(knots[-1])
    x = torch.clamp(torch.as_tensor(x_eval, dtype=torch.float64), lo, hi)
    b_splines = B_batch(x, knots, k)
    y = b_splines @ torch.as_tensor(coef, dtype=torch.float64)
    return y.numpy()


@functools.lru_cache(maxsize=64)
def basis_moments(grid_size, degree, domain=(-1.0, 1.0), num_samples=10000, h=1e-4, seed=0):
    """
    Monte-Carlo estimate of E[B_m(x)^2] and E[B_m'(x)^2] for x ~ N(0, 1)
    clamped into the domain.

    Results are cached per configuration, so edges sharing a grid reuse them.

    Returns:
        (mu0, mu1): two (grid_size + 1,) numpy arrays
    """
    lo, hi = float(domain[0]), float(domain[1])
    knots = clamped_knot_vector(grid_size + 1, degree, (lo, hi))

    generator = torch.Generator().manual_seed(seed)
    samples = torch.randn(num_samples, generator=generator, dtype=torch.float64)
    samples = torch.clamp(samples, lo, hi)

    basis = B_batch(samples, knots, degree)
    mu0 = (basis ** 2).mean(dim=0)

    x_lo = torch.clamp(samples - h, lo, hi)
    x_hi = torch.clamp(samples + h, lo, hi)
    width = (x_hi - x_lo).unsqueeze(-1)
    d_basis = (B_batch(x_hi, knots, degree) - B_batch(x_lo, knots, degree)) / width
    mu1 = (d_basis ** 2).mean(dim=0)

    return mu0.numpy(), mu1.numpy()
