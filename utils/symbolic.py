"""
Symbolic library fitting for KAN edges.

Each trained edge function is sampled over its domain and matched against a
small library of candidate functions, either one entry at a time (closed-form
single coefficient) or all entries at once (ridge least squares).
"""

import math
import warnings
from typing import Dict, List, Optional, Tuple

import numpy as np

try:
    import sympy as sp
    SYMPY_AVAILABLE = True
except ImportError:
    SYMPY_AVAILABLE = False
    warnings.warn("SymPy not installed. Formula export will be unavailable.")


# Standard symbolic function library
SYMBOLIC_LIBRARY = {
    'const': lambda x: np.ones_like(x),
    'x': lambda x: x,
    'x^2': lambda x: x ** 2,
    'x^3': lambda x: x ** 3,
    'sin': np.sin,
    'cos': np.cos,
    'exp': np.exp,
    'abs': np.abs,
}

LIBRARY_REGULARIZATION = 1e-6


def _library_values(name: str, xs: np.ndarray) -> np.ndarray:
    values = np.asarray(SYMBOLIC_LIBRARY[name](xs), dtype=np.float64)
    return np.where(np.isfinite(values), values, 0.0)


def sample_edge(edge, num_samples: int = 200) -> Tuple[np.ndarray, np.ndarray]:
    """Evenly spaced inputs over the edge domain and the spline values there."""
    lo, hi = edge.function.domain
    xs = np.linspace(lo, hi, max(2, num_samples))
    ys = np.array([edge.function.evaluate(x) for x in xs])
    return xs, ys


def fit_best_entry(xs, ys, entries: Optional[List[str]] = None) -> Optional[Tuple[str, float, float]]:
    """
    Best single library entry for y ~ c * f(x).

    Returns:
        (name, coefficient, rmse), or None if nothing could be fitted
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    entries = list(SYMBOLIC_LIBRARY) if entries is None else entries
    if not entries or xs.size == 0 or xs.shape != ys.shape:
        return None

    best = None
    for name in entries:
        basis = _library_values(name, xs)
        denominator = float((basis * basis).sum())
        if not math.isfinite(denominator) or abs(denominator) < 1e-9:
            continue
        coefficient = float((basis * ys).sum()) / denominator
        rmse = float(np.sqrt(((coefficient * basis - ys) ** 2).mean()))
        if best is None or rmse < best[2]:
            best = (name, coefficient, rmse)
    return best


def fit_library(xs, ys, entries: Optional[List[str]] = None,
                regularization: float = LIBRARY_REGULARIZATION) -> Optional[Dict]:
    """
    Fit y ~ sum_j c_j * f_j(x) over all entries with ridge least squares.

    Returns:
        Dict with 'coefficients' (name -> c), 'combined' (fitted ys) and 'rmse',
        or None if the normal equations are singular
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    entries = list(SYMBOLIC_LIBRARY) if entries is None else entries
    if not entries or xs.size == 0 or xs.shape != ys.shape:
        return None

    design = np.stack([_library_values(name, xs) for name in entries], axis=1)
    ata = design.T @ design + regularization * np.eye(len(entries))
    atb = design.T @ ys
    try:
        coef = np.linalg.solve(ata, atb)
    except np.linalg.LinAlgError:
        return None

    combined = design @ coef
    rmse = float(np.sqrt(((combined - ys) ** 2).mean()))
    return {
        'coefficients': dict(zip(entries, coef.tolist())),
        'combined': combined,
        'rmse': rmse,
    }


def suggest_symbolic_edges(model, num_samples: int = 200,
                           entries: Optional[List[str]] = None) -> Dict[str, Tuple[str, float, float]]:
    """Best library entry for every active edge, keyed by edge id."""
    suggestions = {}
    for edge in model.edges():
        if not edge.is_active:
            continue
        xs, ys = sample_edge(edge, num_samples)
        best = fit_best_entry(xs, ys, entries)
        if best is not None:
            suggestions[edge.id] = best
    return suggestions


# =============================================================================
# SYMPY EXPORT
# =============================================================================

def _sympy_entry(name: str, x):
    return {
        'const': sp.Integer(1),
        'x': x,
        'x^2': x ** 2,
        'x^3': x ** 3,
        'sin': sp.sin(x),
        'cos': sp.cos(x),
        'exp': sp.exp(x),
        'abs': sp.Abs(x),
    }[name]


def edge_formula(name: str, coefficient: float, x=None):
    """SymPy expression coefficient * f(x) for a library entry."""
    if not SYMPY_AVAILABLE:
        raise ImportError("SymPy required for formula export")
    x = sp.Symbol('x') if x is None else x
    return sp.Float(coefficient, 6) * _sympy_entry(name, x)


def extract_network_formula(model, num_samples: int = 200, simplify: bool = False):
    """
    Compose per-edge symbolic fits into a formula for the output node.

    Input nodes become SymPy symbols named after their ids.
    """
    if not SYMPY_AVAILABLE:
        raise ImportError("SymPy required for formula export")

    suggestions = suggest_symbolic_edges(model, num_samples)
    expressions = {node.id: sp.Symbol(node.id) for node in model[0]}

    for layer in model[1:]:
        for node in layer:
            expr = sp.Integer(0)
            if node.is_active:
                for edge in node.input_edges:
                    if edge.id not in suggestions:
                        continue
                    name, coefficient, _ = suggestions[edge.id]
                    expr += edge_formula(name, coefficient, expressions[edge.source.id])
            expressions[node.id] = expr

    formula = expressions[model.output_node.id]
    return sp.simplify(formula) if simplify else formula
