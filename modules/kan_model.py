import math
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .kan_edge import KANEdge
from .kan_node import KANNode


class ShapeMismatchError(ValueError):
    """Input vector length does not match the input layer."""


class ErrorFunction(NamedTuple):
    """An error function and its derivative w.r.t. the output."""
    error: Callable[[float, float], float]
    der: Callable[[float, float], float]


class Errors:
    """Built-in error functions."""
    SQUARE = ErrorFunction(
        error=lambda output, target: 0.5 * (output - target) ** 2,
        der=lambda output, target: output - target,
    )


class KAN:
    """
    Kolmogorov-Arnold Network as a layered graph of nodes and spline edges.

    Layer 0 holds one node per input feature, the last layer a single output
    node. Consecutive layers are fully connected.

    Args:
        layers_hidden: List of integers [in_dim, h1, h2, ..., 1]
        input_ids: Identifiers of the input nodes (default: x1..xn)
        grid_size: Number of grid intervals G (G + 1 control points per edge)
        degree: B-spline degree, clamped to G - 1
        init: Control point init (number, "linear", "xavier", "kaiming",
              "lecun", "glorot" or an InitScheme)
        domain: Input range of every edge function
        seed: Seed for reproducible initialization
        histogram_bins: Bins of every edge activation histogram
        input_range, output_range: Initial edge histogram ranges
        input_decay, output_decay: Per-record histogram decay (1.0 = none)
    """

    def __init__(self, layers_hidden: Sequence[int],
                 input_ids: Optional[Sequence[str]] = None,
                 grid_size: int = 5,
                 degree: int = 3,
                 init=0.3,
                 domain: Tuple[float, float] = (-1.0, 1.0),
                 seed: Optional[int] = None,
                 histogram_bins: int = 20,
                 input_range: Tuple[float, float] = (-1.0, 1.0),
                 output_range: Tuple[float, float] = (-2.0, 2.0),
                 input_decay: float = 1.0,
                 output_decay: float = 1.0):
        shape = [int(n) for n in layers_hidden]
        if len(shape) < 2:
            raise ValueError("A KAN needs at least an input and an output layer")
        if any(n < 1 for n in shape):
            raise ValueError(f"Every layer needs at least one node, got {shape}")
        if shape[-1] != 1:
            raise ValueError(f"The output layer must have exactly one node, got {shape[-1]}")
        if input_ids is None:
            input_ids = [f"x{i + 1}" for i in range(shape[0])]
        if len(input_ids) < shape[0]:
            raise ValueError(f"Need {shape[0]} input ids, got {len(input_ids)}")

        self.shape = shape
        self.grid_size = grid_size
        self.degree = degree
        self.domain = (float(domain[0]), float(domain[1]))
        rng = np.random.default_rng(seed)

        # Nodes; non-input nodes are numbered from 1 across hidden and output layers
        self.layers: List[List[KANNode]] = []
        node_id = 1
        for layer_idx, num_nodes in enumerate(shape):
            layer = []
            for i in range(num_nodes):
                if layer_idx == 0:
                    layer.append(KANNode(str(input_ids[i])))
                else:
                    layer.append(KANNode(str(node_id)))
                    node_id += 1
            self.layers.append(layer)

        # Edges between consecutive layers
        for layer_idx in range(1, len(shape)):
            prev_layer = self.layers[layer_idx - 1]
            fan_in = len(prev_layer)
            fan_out = shape[layer_idx + 1] if layer_idx < len(shape) - 1 else 1
            for dest in self.layers[layer_idx]:
                for source in prev_layer:
                    edge = KANEdge(
                        source, dest,
                        grid_size=grid_size, degree=degree, init=init,
                        fan_in=fan_in, fan_out=fan_out, domain=self.domain,
                        histogram_bins=histogram_bins,
                        input_range=input_range, output_range=output_range,
                        input_decay=input_decay, output_decay=output_decay,
                        rng=rng,
                    )
                    source.output_edges.append(edge)
                    dest.input_edges.append(edge)

    # -------------------------------------------------------------------------
    # Layer access
    # -------------------------------------------------------------------------

    def __len__(self):
        return len(self.layers)

    def __getitem__(self, idx):
        return self.layers[idx]

    def __iter__(self):
        return iter(self.layers)

    @property
    def output_node(self) -> KANNode:
        return self.layers[-1][0]

    def edges(self) -> Iterator[KANEdge]:
        """All edges, grouped by destination layer."""
        for layer in self.layers[1:]:
            for node in layer:
                yield from node.input_edges

    def for_each_node(self, ignore_inputs: bool, visitor: Callable[[KANNode], object]):
        for layer in self.layers[1 if ignore_inputs else 0:]:
            for node in layer:
                visitor(node)

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def forward(self, inputs: Sequence[float], record_histogram: bool = True) -> float:
        """
        Forward pass for a single example.

        Raises:
            ShapeMismatchError: if len(inputs) != size of the input layer
        """
        input_layer = self.layers[0]
        if len(inputs) != len(input_layer):
            raise ShapeMismatchError(
                f"Number of inputs ({len(inputs)}) must match input layer size ({len(input_layer)})"
            )

        for node, value in zip(input_layer, inputs):
            node.output = float(value)

        for layer in self.layers[1:]:
            for node in layer:
                node.forward(record_histogram)

        return self.output_node.output

    def backward(self, target: float, error_fn: ErrorFunction = Errors.SQUARE):
        """Backpropagate from the output, accumulating edge gradients."""
        out = self.output_node
        out.output_der = error_fn.der(out.output, target)

        for layer_idx in range(len(self.layers) - 1, 0, -1):
            # backward() sums into the previous layer, so clear it first
            for node in self.layers[layer_idx - 1]:
                node.output_der = 0.0
            for node in self.layers[layer_idx]:
                node.backward()

    def update_weights(self, learning_rate: float):
        for edge in self.edges():
            edge.update_parameters(learning_rate)

    def reset_histograms(self):
        for edge in self.edges():
            edge.reset_histogram()

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    def state_dict(self) -> Dict[str, Dict]:
        """In-memory copy of control points and active flags, keyed by edge id."""
        return {
            edge.id: {"control_points": edge.control_points.copy(), "is_active": edge.is_active}
            for edge in self.edges()
        }

    def load_state_dict(self, state: Dict[str, Dict]):
        for edge in self.edges():
            if edge.id not in state:
                continue
            entry = state[edge.id]
            edge.control_points[:] = entry["control_points"]
            edge.is_active = entry.get("is_active", edge.is_active)

    def get_edge_norms(self) -> List[float]:
        """L2 norm of each edge's control points, in source-layer order."""
        norms = []
        for layer in self.layers[:-1]:
            for node in layer:
                for edge in node.output_edges:
                    norms.append(float(np.linalg.norm(edge.control_points)))
        return norms

    def prune(self, threshold: float = 1e-2):
        """Deactivate edges whose norm is below threshold * max norm."""
        edges = list(self.edges())
        norms = [float(np.linalg.norm(edge.control_points)) for edge in edges]
        max_norm = max(norms, default=0.0)
        if max_norm == 0.0 or not math.isfinite(max_norm):
            return
        for edge, norm in zip(edges, norms):
            if norm < threshold * max_norm:
                edge.is_active = False

    def get_parameter_count(self, trainable_only: bool = True) -> int:
        return sum(
            edge.function.num_control_points
            for edge in self.edges()
            if edge.is_active or not trainable_only
        )

    def __repr__(self):
        return f"KAN(shape={self.shape}, grid_size={self.grid_size}, degree={self.degree})"
