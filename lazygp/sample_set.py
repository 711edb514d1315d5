"""Module for the training samples of a Gaussian process."""

import numpy as np

from lazygp.errors import DimensionMismatchError


class Sample:
    """
    A single training observation.

    Parameters
    ----------
    x : array_like, shape (D,)
        The input vector. A read-only copy is kept.
    y : float
        The target value.
    """

    __slots__ = ("x", "y")

    def __init__(self, x, y: float):
        x = np.array(x, dtype=float).ravel()
        x.flags.writeable = False
        self.x = x
        self.y = float(y)

    def __repr__(self):
        return f"Sample(x={self.x.tolist()!r}, y={self.y!r})"


class SampleSet:
    """
    Insertion-ordered collection of training samples.

    The order of the samples determines the rows and columns of the kernel
    matrix, so samples can only be appended or cleared all at once.

    Parameters
    ----------
    input_dim : int
        The dimensionality of the inputs.
    """

    def __init__(self, input_dim: int):
        self.input_dim = input_dim
        self.samples = []

    def add(self, x, y: float):
        """
        Append a new sample.

        Raises
        ------
        DimensionMismatchError
            Raised when ``x`` does not have ``input_dim`` elements.
        ValueError
            Raised when ``x`` or ``y`` contains NaN or infinite values.
        """
        sample = Sample(x, y)
        if sample.x.size != self.input_dim:
            raise DimensionMismatchError(
                f"Expected an input vector with {self.input_dim} elements, "
                f"{sample.x.size} passed instead."
            )
        if not np.all(np.isfinite(sample.x)) or not np.isfinite(sample.y):
            raise ValueError("Inputs and targets need to be finite.")
        self.samples.append(sample)

    def size(self):
        """Return the number of samples."""
        return len(self.samples)

    def clear(self):
        """Remove all samples."""
        self.samples = []

    def inputs(self):
        """Return the inputs as an array of shape ``(N, input_dim)``."""
        if len(self.samples) == 0:
            return np.zeros((0, self.input_dim))
        return np.vstack([sample.x for sample in self.samples])

    def targets(self):
        """Return the targets as an array of shape ``(N,)``."""
        return np.array([sample.y for sample in self.samples], dtype=float)

    def __len__(self):
        return len(self.samples)

    def __getitem__(self, i):
        return self.samples[i]

    def __iter__(self):
        return iter(self.samples)
