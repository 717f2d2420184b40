"""
KAN Playground Core - Kolmogorov-Arnold Networks with B-spline edges

A small, single-example KAN engine for interactive training: every edge
carries a clamped B-spline, trained by backpropagation with mini-batch
gradient accumulation.

Usage:
    from kan import create_kan, forward_prop, back_prop, update_weights

    # Create model
    model = create_kan([2, 4, 1], input_ids=["x", "y"], grid_size=5, degree=3)

    # Train one example
    forward_prop(model, [0.2, -0.7])
    back_prop(model, target=1.0)
    update_weights(model, learning_rate=0.03)

    # Or run epochs
    trainer = KANTrainer(model, learning_rate=0.03, batch_size=10)
    trainer.train(x_train, y_train, epochs=100)
"""

# Core modules
from modules import (
    KAN, KANEdge, KANNode, LearnableFunction, ActivationHistogram,
    Errors, ErrorFunction, ShapeMismatchError,
    FixedNoise, LinearInit, NamedScheme, SchemeKind, parse_init_scheme,
    create_kan, create_kan_from_config,
    forward_prop, back_prop, update_weights,
    output_node, reset_histograms, for_each_node,
    train_step, evaluate, predict, prune_kan, summary
)

# Utilities
from utils import (
    B_batch, coef2curve, fit_best_entry, fit_library,
    suggest_symbolic_edges, extract_network_formula
)
from utils.trainer import KANTrainer

__version__ = "0.1.0"
__author__ = "KAN Playground"

__all__ = [
    # Core
    'KAN', 'KANEdge', 'KANNode', 'LearnableFunction', 'ActivationHistogram',
    'Errors', 'ErrorFunction', 'ShapeMismatchError',
    'FixedNoise', 'LinearInit', 'NamedScheme', 'SchemeKind', 'parse_init_scheme',
    # Network functions
    'create_kan', 'create_kan_from_config',
    'forward_prop', 'back_prop', 'update_weights',
    'output_node', 'reset_histograms', 'for_each_node',
    'train_step', 'evaluate', 'predict', 'prune_kan', 'summary',
    # Training
    'KANTrainer',
    # Symbolic / spline utilities
    'B_batch', 'coef2curve', 'fit_best_entry', 'fit_library',
    'suggest_symbolic_edges', 'extract_network_formula',
]
