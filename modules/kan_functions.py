"""
KAN Functions Module
====================

Functional interface to the KAN core, used by hosts that drive training
interactively (step, read node/edge state, tweak edges, step again).

Usage:
    from modules.kan_functions import *

    # Create model
    model = create_kan([2, 5, 1], input_ids=["x", "y"])

    # One example
    y = forward_prop(model, [0.1, -0.4])
    back_prop(model, target=0.5)
    update_weights(model, learning_rate=0.03)

    # One epoch with mini-batches
    loss = train_step(model, inputs, targets, learning_rate=0.03, batch_size=10)
"""

from copy import deepcopy
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .kan_edge import KANEdge
from .kan_model import KAN, ErrorFunction, Errors
from .kan_node import KANNode


__all__ = [
    # Creation
    'create_kan', 'create_kan_from_config',
    # Propagation
    'forward_prop', 'back_prop', 'update_weights',
    'output_node', 'reset_histograms', 'for_each_node',
    # Training
    'train_step', 'train_kan', 'evaluate', 'get_loss',
    # Inference
    'predict',
    # Pruning
    'prune_kan', 'get_output_weights', 'count_active_edges',
    # Utilities
    'count_parameters', 'summary', 'clone_kan',
]


# =============================================================================
# CREATION
# =============================================================================

def create_kan(layers: List[int],
               input_ids: Optional[Sequence[str]] = None,
               grid_size: int = 5,
               degree: int = 3,
               init=0.3,
               domain: Tuple[float, float] = (-1.0, 1.0),
               seed: Optional[int] = None,
               input_range: Tuple[float, float] = (-1.0, 1.0),
               output_range: Tuple[float, float] = (-2.0, 2.0)) -> KAN:
    """
    Create a KAN with specified architecture.

    Args:
        layers: Layer widths [input, hidden..., 1]
        input_ids: Input node identifiers
        grid_size: B-spline grid intervals
        degree: Spline degree (default: 3 = cubic)
        init: Control point initialization scheme
        domain: Edge function input range
        seed: Seed for initialization
        input_range, output_range: Initial edge histogram ranges
    Returns:
        KAN model

    Example:
        >>> model = create_kan([2, 5, 1], input_ids=["x", "y"])
        >>> model = create_kan([1, 3, 1], grid_size=8, init="glorot", seed=0)
    """
    return KAN(
        layers_hidden=layers,
        input_ids=input_ids,
        grid_size=grid_size,
        degree=degree,
        init=init,
        domain=domain,
        seed=seed,
        input_range=input_range,
        output_range=output_range,
    )


def create_kan_from_config(config: Dict) -> KAN:
    """
    Create KAN from configuration dict.

    Config keys: 'layers', 'input_ids', 'grid_size', 'degree', 'init', 'domain', 'seed',
    'input_range', 'output_range'
    """
    return create_kan(
        layers=config.get('layers', [2, 5, 1]),
        input_ids=config.get('input_ids'),
        grid_size=config.get('grid_size', 5),
        degree=config.get('degree', 3),
        init=config.get('init', 0.3),
        domain=tuple(config.get('domain', (-1.0, 1.0))),
        seed=config.get('seed'),
        input_range=tuple(config.get('input_range', (-1.0, 1.0))),
        output_range=tuple(config.get('output_range', (-2.0, 2.0))),
    )


# =============================================================================
# PROPAGATION
# =============================================================================

def forward_prop(model: KAN, inputs: Sequence[float], record_histogram: bool = True) -> float:
    """Forward pass for one example; returns the output node value."""
    return model.forward(inputs, record_histogram)


def back_prop(model: KAN, target: float, error_fn: ErrorFunction = Errors.SQUARE) -> None:
    """Backward pass for the example of the last forward_prop."""
    model.backward(target, error_fn)


def update_weights(model: KAN, learning_rate: float) -> None:
    """Apply the mean of the accumulated gradients on every edge."""
    model.update_weights(learning_rate)


def output_node(model: KAN) -> KANNode:
    return model.output_node


def reset_histograms(model: KAN) -> None:
    model.reset_histograms()


def for_each_node(model: KAN, ignore_inputs: bool, visitor: Callable[[KANNode], object]) -> None:
    model.for_each_node(ignore_inputs, visitor)


# =============================================================================
# TRAINING
# =============================================================================

def train_step(model: KAN, inputs: Sequence[Sequence[float]], targets: Sequence[float],
               learning_rate: float = 0.03,
               batch_size: int = 10,
               error_fn: ErrorFunction = Errors.SQUARE) -> float:
    """
    One pass over the examples, updating after every batch_size examples.

    Gradients of a trailing partial batch stay accumulated for the next call.

    Returns:
        Mean training loss after the pass
    """
    batch_size = max(1, int(batch_size))
    for i, (x, y) in enumerate(zip(inputs, targets)):
        forward_prop(model, x, record_histogram=True)
        back_prop(model, y, error_fn)
        if (i + 1) % batch_size == 0:
            update_weights(model, learning_rate)
    return evaluate(model, inputs, targets, error_fn)


def train_kan(model: KAN, inputs, targets,
              epochs: int = 100,
              learning_rate: float = 0.03,
              batch_size: int = 10,
              x_val=None,
              y_val=None,
              early_stopping: int = 0,
              verbose: bool = True,
              print_every: int = 10) -> Dict:
    """
    Train a KAN model.

    Args:
        model: KAN model
        inputs, targets: Training data
        epochs: Training epochs
        learning_rate: Learning rate
        batch_size: Examples per parameter update
        x_val, y_val: Optional validation data
        early_stopping: Stop after N epochs without improvement (0=disabled)
        verbose: Print progress
        print_every: Print frequency
    Returns:
        History dict with 'train_loss', 'val_loss'

    Example:
        >>> history = train_kan(model, x, y, epochs=50, learning_rate=0.03)
    """
    from utils.trainer import KANTrainer

    trainer = KANTrainer(model, learning_rate=learning_rate, batch_size=batch_size)
    history = trainer.train(inputs, targets, x_val, y_val, epochs=epochs,
                            early_stopping=early_stopping, verbose=verbose,
                            print_every=print_every)
    trainer.restore_best(verbose=False)
    return history


def evaluate(model: KAN, inputs, targets, error_fn: ErrorFunction = Errors.SQUARE) -> float:
    """Mean error over the examples; histograms are left untouched."""
    if len(inputs) == 0:
        return 0.0
    loss = 0.0
    for x, y in zip(inputs, targets):
        loss += error_fn.error(forward_prop(model, x, record_histogram=False), y)
    return loss / len(inputs)


get_loss = evaluate


# =============================================================================
# INFERENCE
# =============================================================================

def predict(model: KAN, inputs) -> List[float]:
    """Get predictions."""
    return [forward_prop(model, x, record_histogram=False) for x in inputs]


# =============================================================================
# PRUNING
# =============================================================================

def get_output_weights(model: KAN) -> List[float]:
    """Control point L2 norm of every edge, in source-layer order."""
    return model.get_edge_norms()


def prune_kan(model: KAN, threshold: float = 0.01) -> KAN:
    """
    Deactivate unimportant edges.

    Args:
        model: KAN model
        threshold: Relative threshold (prune if norm < threshold * max norm)
    Returns:
        Pruned model

    Example:
        >>> pruned = prune_kan(model, threshold=0.05)
        >>> print(f"Active edges: {count_active_edges(pruned)}")
    """
    model.prune(threshold=threshold)
    return model


def count_active_edges(model: KAN) -> int:
    return sum(1 for edge in model.edges() if edge.is_active)


# =============================================================================
# UTILITIES
# =============================================================================

def count_parameters(model: KAN, trainable_only: bool = True) -> int:
    """Count control points (only on active edges when trainable_only)."""
    return model.get_parameter_count(trainable_only)


def summary(model: KAN) -> str:
    """Get model summary string."""
    edges: List[KANEdge] = list(model.edges())
    lines = ["KAN Model Summary", "=" * 40]
    lines.append(f"Architecture: {model.shape}")
    lines.append(f"Inputs: {[node.id for node in model[0]]}")
    lines.append(f"Grid size: {model.grid_size}")
    lines.append(f"Degree: {edges[0].degree if edges else model.degree}")
    lines.append(f"Domain: {model.domain}")
    lines.append(f"Parameters: {count_parameters(model):,}")
    lines.append(f"Active edges: {count_active_edges(model)}/{len(edges)}")
    return "\n".join(lines)


def clone_kan(model: KAN) -> KAN:
    """Create a deep copy of KAN model."""
    return deepcopy(model)
