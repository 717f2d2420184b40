"""
Training loop for KAN models.

The host calls step() repeatedly (one epoch per call) and reads losses from
history; stopping is simply not calling step() again.
"""

from typing import Callable, Dict, List, Optional

from modules.kan_functions import evaluate, train_step
from modules.kan_model import ErrorFunction, Errors


class KANTrainer:
    """
    Mini-batch trainer with loss history, callbacks and best-state tracking.

    Args:
        model: KAN model
        learning_rate: Step size for control point updates
        batch_size: Examples per parameter update
        error_fn: Error function (default: squared error)
    """

    def __init__(self, model, learning_rate: float = 0.03, batch_size: int = 10,
                 error_fn: ErrorFunction = Errors.SQUARE):
        self.model = model
        self.learning_rate = learning_rate
        self.batch_size = batch_size
        self.error_fn = error_fn

        self.callbacks: List[Callable] = []
        self.history = {'train_loss': [], 'test_loss': []}
        self.iteration = 0
        self.best_loss = float('inf')
        self.best_state = None

    def add_callback(self, callback: Callable):
        """Add a callback(epoch, history, model) called after each epoch."""
        self.callbacks.append(callback)

    def step(self, x_train, y_train, x_test=None, y_test=None) -> Dict[str, float]:
        """Run one epoch and record train/test loss."""
        self.iteration += 1
        train_loss = train_step(self.model, x_train, y_train,
                                learning_rate=self.learning_rate,
                                batch_size=self.batch_size,
                                error_fn=self.error_fn)
        test_loss = 0.0
        if x_test is not None:
            test_loss = evaluate(self.model, x_test, y_test, self.error_fn)

        self.history['train_loss'].append(train_loss)
        self.history['test_loss'].append(test_loss)
        return {'train_loss': train_loss, 'test_loss': test_loss}

    def train(self, x_train, y_train,
              x_test=None, y_test=None,
              epochs: int = 100,
              early_stopping: int = 0,
              verbose: bool = True,
              print_every: int = 10) -> Dict:
        """
        Train the KAN model.

        Args:
            x_train, y_train: Training data
            x_test, y_test: Optional held-out data
            epochs: Number of epochs
            early_stopping: Stop after this many epochs without improvement (0=disabled)
            verbose: Print progress
            print_every: Print frequency in epochs
        Returns:
            Training history dict
        """
        no_improve = 0

        for epoch in range(epochs):
            losses = self.step(x_train, y_train, x_test, y_test)

            current_loss = losses['test_loss'] if x_test is not None else losses['train_loss']
            if current_loss < self.best_loss:
                self.best_loss = current_loss
                self.best_state = self.model.state_dict()
                no_improve = 0
            else:
                no_improve += 1

            if early_stopping and no_improve >= early_stopping:
                if verbose:
                    print(f"Early stopping at epoch {epoch + 1}")
                break

            for callback in self.callbacks:
                callback(epoch, self.history, self.model)

            if verbose and (epoch + 1) % print_every == 0:
                print(f"Epoch {epoch + 1}/{epochs}, Loss: {losses['train_loss']:.6f}, "
                      f"Test: {losses['test_loss']:.6f}")

        return self.history

    def restore_best(self, verbose: bool = True):
        """Restore the best model state."""
        if self.best_state:
            self.model.load_state_dict(self.best_state)
            if verbose:
                print(f"Restored best model (loss: {self.best_loss:.6f})")
