from .spline_utils import B_batch, coef2curve, clamped_knot_vector, basis_moments
from .symbolic import (
    SYMBOLIC_LIBRARY, sample_edge, fit_best_entry, fit_library,
    suggest_symbolic_edges, edge_formula, extract_network_formula
)

# KANTrainer lives in utils.trainer; it depends on modules, which imports this package.

__all__ = [
    'B_batch', 'coef2curve', 'clamped_knot_vector', 'basis_moments',
    'SYMBOLIC_LIBRARY', 'sample_edge', 'fit_best_entry', 'fit_library',
    'suggest_symbolic_edges', 'edge_formula', 'extract_network_formula',
]
