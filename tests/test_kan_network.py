"""
Tests for network assembly, propagation and the functional interface.
"""

import numpy as np
import pytest
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from modules.kan_model import KAN, Errors, ShapeMismatchError
from modules.kan_functions import (
    create_kan, create_kan_from_config, forward_prop, back_prop, update_weights,
    output_node, reset_histograms, for_each_node, train_step, evaluate, predict,
    prune_kan, get_output_weights, count_active_edges, count_parameters, summary, clone_kan
)


class TestBuild:

    def test_node_ids(self):
        model = create_kan([2, 3, 1], input_ids=["x", "y"], seed=0)
        assert [n.id for n in model[0]] == ["x", "y"]
        assert [n.id for n in model[1]] == ["1", "2", "3"]
        assert [n.id for n in model[2]] == ["4"]
        assert output_node(model) is model[2][0]

    def test_full_connectivity(self):
        model = create_kan([2, 3, 1], input_ids=["x", "y"], seed=0)
        edges = list(model.edges())
        assert len(edges) == 2 * 3 + 3 * 1
        for node in model[1]:
            assert [e.source.id for e in node.input_edges] == ["x", "y"]
            for e in node.input_edges:
                assert e.dest is node
                assert e in e.source.output_edges
        assert len(model[0][0].output_edges) == 3
        assert model[0][0].input_edges == []

    def test_fan_hints(self):
        model = create_kan([2, 3, 4, 1], seed=0)
        first = model[1][0].input_edges[0].function
        middle = model[2][0].input_edges[0].function
        last = model[3][0].input_edges[0].function
        assert (first.fan_in, first.fan_out) == (2, 4)
        assert (middle.fan_in, middle.fan_out) == (3, 1)
        assert (last.fan_in, last.fan_out) == (4, 1)

    def test_default_input_ids(self):
        model = create_kan([3, 1], seed=0)
        assert [n.id for n in model[0]] == ["x1", "x2", "x3"]

    def test_histogram_ranges_passed_to_edges(self):
        model = create_kan([2, 2, 1], seed=0, input_range=(-6.0, 6.0), output_range=(-3.0, 3.0))
        for edge in model.edges():
            assert edge.input_histogram.value_range == (-6.0, 6.0)
            assert edge.output_histogram.value_range == (-3.0, 3.0)
        model = KAN([1, 1], input_range=(0.0, 1.0), input_decay=0.9)
        edge = next(model.edges())
        assert edge.input_histogram.value_range == (0.0, 1.0)
        assert edge.input_histogram.decay == 0.9
        assert edge.output_histogram.value_range == (-2.0, 2.0)

    def test_histogram_ranges_from_config(self):
        model = create_kan_from_config({'layers': [1, 1], 'input_range': [-4, 4], 'seed': 0})
        assert next(model.edges()).input_histogram.value_range == (-4.0, 4.0)

    def test_single_interval_grid_network(self):
        model = create_kan([1, 1], grid_size=1, degree=3, seed=0)
        edge = next(model.edges())
        assert edge.degree == 0
        assert len(edge.control_points) == 2
        y = forward_prop(model, [0.3])
        assert np.isfinite(y)
        assert y == edge.control_points[1]

    @pytest.mark.parametrize("shape", [[1], [2, 2], [0, 1], [2, 0, 1]])
    def test_invalid_shapes(self, shape):
        with pytest.raises(ValueError):
            create_kan(shape)

    def test_too_few_input_ids(self):
        with pytest.raises(ValueError):
            create_kan([2, 1], input_ids=["x"])

    def test_seed_reproducible(self):
        a = create_kan([2, 2, 1], seed=7)
        b = create_kan([2, 2, 1], seed=7)
        for ea, eb in zip(a.edges(), b.edges()):
            assert np.array_equal(ea.control_points, eb.control_points)

    def test_from_config(self):
        model = create_kan_from_config({
            'layers': [1, 2, 1], 'input_ids': ['t'], 'grid_size': 3,
            'degree': 5, 'init': 'xavier', 'seed': 1,
        })
        edge = next(model.edges())
        assert edge.degree == 2
        assert len(edge.control_points) == 4
        assert model[0][0].id == 't'


class TestScenarios:

    def test_zero_spline_outputs_zero(self):
        model = create_kan([1, 1, 1], input_ids=["x"], grid_size=4, degree=3, init=0.0)
        assert forward_prop(model, [0.5], False) == 0.0

    def test_constant_spline(self):
        model = create_kan([1, 1, 1], input_ids=["x"], grid_size=4, degree=3, seed=0)
        edge = model[1][0].input_edges[0]
        edge.control_points[:] = [0.42] * 5
        assert edge.function.evaluate(0.3) == pytest.approx(0.42, abs=1e-12)


class TestPropagation:

    def test_forward_matches_manual(self):
        model = create_kan([2, 2, 1], input_ids=["x", "y"], seed=3)
        inputs = [0.2, -0.7]
        hidden = []
        for node in model[1]:
            hidden.append(sum(e.function.evaluate(v) for e, v in zip(node.input_edges, inputs)))
        out_edges = model[2][0].input_edges
        expected = sum(e.function.evaluate(h) for e, h in zip(out_edges, hidden))
        assert forward_prop(model, inputs) == pytest.approx(expected)
        assert [n.output for n in model[0]] == inputs

    def test_shape_mismatch(self):
        model = create_kan([2, 1], seed=0)
        with pytest.raises(ShapeMismatchError):
            forward_prop(model, [0.1])
        with pytest.raises(ValueError):
            forward_prop(model, [0.1, 0.2, 0.3])

    def test_backprop_output_derivative(self):
        model = create_kan([2, 2, 1], seed=1)
        y = forward_prop(model, [0.3, 0.1])
        back_prop(model, 0.9, Errors.SQUARE)
        assert output_node(model).output_der == pytest.approx(y - 0.9)
        for edge in model.edges():
            assert edge.num_accumulated == 1

    def test_backprop_resets_previous_derivatives(self):
        model = create_kan([2, 3, 1], seed=2)
        forward_prop(model, [0.3, -0.4])
        back_prop(model, 1.0)
        first = [n.output_der for n in model[1]]
        back_prop(model, 1.0)
        assert [n.output_der for n in model[1]] == pytest.approx(first)

    def test_backprop_hidden_derivative(self):
        model = create_kan([1, 2, 1], seed=4)
        forward_prop(model, [0.25])
        back_prop(model, 0.0)
        out = output_node(model)
        for edge in out.input_edges:
            expected = out.output_der * edge.function.derivative(edge.last_input)
            assert edge.source.output_der == pytest.approx(expected)

    def test_gradient_step_decreases_loss(self):
        model = create_kan([2, 3, 1], input_ids=["x", "y"], init=0.3, seed=5)
        inputs, target = [0.3, -0.5], 0.8
        before = Errors.SQUARE.error(forward_prop(model, inputs), target)
        back_prop(model, target, Errors.SQUARE)
        update_weights(model, 0.01)
        after = Errors.SQUARE.error(forward_prop(model, inputs), target)
        print(f"✓ loss {before:.6f} -> {after:.6f}")
        assert after <= before

    def test_inactive_edge_isolation(self):
        model = create_kan([1, 2, 1], seed=6)
        out = output_node(model)
        dead, live = out.input_edges
        dead.is_active = False
        frozen = dead.control_points.copy()

        y = forward_prop(model, [0.4])
        assert y == pytest.approx(live.function.evaluate(live.source.output))
        back_prop(model, 1.0)
        update_weights(model, 0.5)
        assert np.array_equal(dead.control_points, frozen)
        assert dead.num_accumulated == 0

    def test_update_clears_accumulators(self):
        model = create_kan([2, 2, 1], seed=7)
        forward_prop(model, [0.1, 0.2])
        back_prop(model, 0.5)
        update_weights(model, 0.1)
        for edge in model.edges():
            assert edge.num_accumulated == 0
            assert np.all(edge.acc_gradients == 0.0)


class TestNetworkHelpers:

    def test_for_each_node(self):
        model = create_kan([2, 3, 1], seed=0)
        seen = []
        for_each_node(model, True, lambda node: seen.append(node.id))
        assert seen == ["1", "2", "3", "4"]
        seen.clear()
        for_each_node(model, False, lambda node: seen.append(node.id))
        assert len(seen) == 6

    def test_reset_histograms(self):
        model = create_kan([2, 2, 1], seed=0)
        forward_prop(model, [0.1, 0.9])
        reset_histograms(model)
        for edge in model.edges():
            assert edge.input_histogram.counts.sum() == 0
            assert edge.output_histogram.counts.sum() == 0

    def test_forward_without_recording(self):
        model = create_kan([2, 2, 1], seed=0)
        forward_prop(model, [0.1, 0.9], record_histogram=False)
        assert all(e.input_histogram.counts.sum() == 0 for e in model.edges())

    def test_state_dict_roundtrip(self):
        model = create_kan([2, 2, 1], seed=0)
        state = model.state_dict()
        for edge in model.edges():
            edge.control_points[:] = 0.0
            edge.is_active = False
        model.load_state_dict(state)
        for edge in model.edges():
            assert np.array_equal(edge.control_points, state[edge.id]["control_points"])
            assert edge.is_active

    def test_clone_is_independent(self):
        model = create_kan([2, 2, 1], seed=0)
        copy = clone_kan(model)
        next(copy.edges()).control_points[:] = 9.0
        assert not np.any(next(model.edges()).control_points == 9.0)


class TestTraining:

    def make_data(self, n=40, seed=0):
        rng = np.random.default_rng(seed)
        x = rng.uniform(-1, 1, size=(n, 1))
        return x.tolist(), (0.5 * x[:, 0] ** 2).tolist()

    def test_train_step_reduces_loss(self):
        x, y = self.make_data()
        model = create_kan([1, 1], grid_size=5, degree=3, init=0.3, seed=0)
        initial = evaluate(model, x, y)
        for _ in range(30):
            loss = train_step(model, x, y, learning_rate=0.5, batch_size=5)
        print(f"✓ train loss {initial:.6f} -> {loss:.6f}")
        assert loss < initial

    def test_partial_batch_stays_accumulated(self):
        x, y = self.make_data(n=7)
        model = create_kan([1, 1], seed=0)
        train_step(model, x, y, learning_rate=0.1, batch_size=5)
        edge = next(model.edges())
        assert edge.num_accumulated == 2

    def test_evaluate_and_predict(self):
        x, y = self.make_data(n=5)
        model = create_kan([1, 2, 1], seed=1)
        predictions = predict(model, x)
        expected = np.mean([0.5 * (p - t) ** 2 for p, t in zip(predictions, y)])
        assert evaluate(model, x, y) == pytest.approx(expected)
        assert evaluate(model, [], []) == 0.0


class TestPruning:

    def test_prune_small_edges(self):
        model = create_kan([2, 2, 1], seed=0)
        edges = list(model.edges())
        for edge in edges:
            edge.control_points[:] = 1.0
        edges[0].control_points[:] = 1e-4
        prune_kan(model, threshold=0.1)
        assert not edges[0].is_active
        assert count_active_edges(model) == len(edges) - 1
        assert count_parameters(model) == (len(edges) - 1) * 6
        assert count_parameters(model, trainable_only=False) == len(edges) * 6

    def test_output_weights(self):
        model = create_kan([2, 2, 1], seed=0)
        weights = get_output_weights(model)
        assert len(weights) == 6
        first = model[0][0].output_edges[0]
        assert weights[0] == pytest.approx(np.linalg.norm(first.control_points))

    def test_summary(self):
        text = summary(create_kan([2, 3, 1], input_ids=["x", "y"], seed=0))
        assert "Architecture: [2, 3, 1]" in text
        assert "Active edges: 9/9" in text
