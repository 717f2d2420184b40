"""
Function Fitting Experiments.

Trains small KANs on 1D/2D test functions and compares initialization schemes.
"""

import numpy as np
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from modules.kan_functions import create_kan, evaluate, count_parameters
from utils.symbolic import suggest_symbolic_edges
from utils.trainer import KANTrainer


TEST_FUNCTIONS = {
    "sin_pi_x": (1, lambda x: np.sin(np.pi * x[:, 0])),
    "x_squared": (1, lambda x: x[:, 0] ** 2),
    "exp_sin": (1, lambda x: np.exp(np.sin(np.pi * x[:, 0])) / np.e),
    "xy": (2, lambda x: x[:, 0] * x[:, 1]),
    "sum_squares": (2, lambda x: (x ** 2).sum(axis=1) / 2),
}

INIT_SCHEMES = [0.3, "linear", "xavier", "kaiming", "lecun", "glorot"]


def make_data(func_name, n_samples, rng):
    n_inputs, func = TEST_FUNCTIONS[func_name]
    x = rng.uniform(-1, 1, size=(n_samples, n_inputs))
    return x.tolist(), func(x).tolist()


def compare_inits(func_name, n_samples=200, epochs=100, seed=0):
    """
    Train [n, 4, 1] KANs with every init scheme on one test function.

    Returns:
        results: Dict init -> final test loss
    """
    rng = np.random.default_rng(seed)
    n_inputs, _ = TEST_FUNCTIONS[func_name]
    x_train, y_train = make_data(func_name, n_samples, rng)
    x_test, y_test = make_data(func_name, n_samples // 4, rng)

    print(f"\n=== {func_name} ===")
    results = {}
    for init in INIT_SCHEMES:
        model = create_kan([n_inputs, 4, 1], grid_size=5, degree=3, init=init, seed=seed)
        trainer = KANTrainer(model, learning_rate=0.1, batch_size=10)
        trainer.train(x_train, y_train, x_test, y_test, epochs=epochs, verbose=False)
        trainer.restore_best(verbose=False)
        results[str(init)] = evaluate(model, x_test, y_test)
        print(f"init={str(init):8s} params={count_parameters(model)} test loss={results[str(init)]:.6f}")

    return results


def symbolic_readout(func_name="x_squared", epochs=200, seed=0):
    """Fit a [1, 1] KAN and print the closest library function of its edge."""
    rng = np.random.default_rng(seed)
    x_train, y_train = make_data(func_name, 200, rng)
    model = create_kan([1, 1], grid_size=8, degree=3, init="linear", seed=seed)
    KANTrainer(model, learning_rate=0.5, batch_size=5).train(x_train, y_train, epochs=epochs, verbose=False)
    for edge_id, (name, coefficient, rmse) in suggest_symbolic_edges(model).items():
        print(f"{edge_id}: {coefficient:.3f} * {name} (rmse {rmse:.4f})")


def run_all_experiments():
    all_results = {}
    for func_name in TEST_FUNCTIONS:
        all_results[func_name] = compare_inits(func_name)
    symbolic_readout()
    return all_results


if __name__ == "__main__":
    run_all_experiments()
