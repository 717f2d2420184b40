from .learnable_function import (
    LearnableFunction, SchemeKind, FixedNoise, LinearInit, NamedScheme, parse_init_scheme
)
from .kan_edge import KANEdge, ActivationHistogram
from .kan_node import KANNode
from .kan_model import KAN, ErrorFunction, Errors, ShapeMismatchError
from .kan_functions import (
    create_kan, create_kan_from_config,
    forward_prop, back_prop, update_weights,
    output_node, reset_histograms, for_each_node,
    train_step, train_kan, evaluate, get_loss, predict,
    prune_kan, get_output_weights, count_active_edges,
    count_parameters, summary, clone_kan
)

__all__ = [
    'LearnableFunction', 'SchemeKind', 'FixedNoise', 'LinearInit', 'NamedScheme', 'parse_init_scheme',
    'KANEdge', 'ActivationHistogram', 'KANNode',
    'KAN', 'ErrorFunction', 'Errors', 'ShapeMismatchError',
    'create_kan', 'create_kan_from_config',
    'forward_prop', 'back_prop', 'update_weights',
    'output_node', 'reset_histograms', 'for_each_node',
    'train_step', 'train_kan', 'evaluate', 'get_loss', 'predict',
    'prune_kan', 'get_output_weights', 'count_active_edges',
    'count_parameters', 'summary', 'clone_kan',
]
