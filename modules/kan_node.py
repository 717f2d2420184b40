class KANNode:
    """
    A node sums the outputs of its incoming edges.

    Attributes:
        id: Node identifier (input feature name or sequential number)
        input_edges, output_edges: Topology back-references
        output: Cached output of the last forward pass
        output_der: d error / d output, filled by the backward pass
        is_active: Inactive nodes output zero and never backpropagate
    """

    def __init__(self, id: str):
        self.id = id
        self.input_edges = []
        self.output_edges = []
        self.output = 0.0
        self.output_der = 0.0
        self.is_active = True

    def forward(self, record_histogram: bool = True) -> float:
        if not self.is_active:
            self.output = 0.0
            return self.output

        self.output = sum(
            (edge.forward(edge.source.output, record_histogram) for edge in self.input_edges),
            0.0,
        )
        return self.output

    def backward(self):
        if not self.is_active:
            return

        for edge in self.input_edges:
            # Chain rule through the spline for the source node
            input_grad = self.output_der * edge.function.derivative(edge.last_input)
            # phi is linear in its control points, so the upstream derivative is used as is
            edge.accumulate_gradients(self.output_der)
            edge.source.output_der += input_grad

    def __repr__(self):
        return f"KANNode({self.id!r}, output={self.output:.4f})"
