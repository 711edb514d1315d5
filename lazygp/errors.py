"""Exceptions raised by the Gaussian process engine."""

import numpy as np


class DimensionMismatchError(ValueError):
    """Raised when a vector does not have the expected length."""


class NotPositiveDefiniteError(np.linalg.LinAlgError):
    """Raised when the kernel matrix cannot be Cholesky factorized."""


class ModelFileError(ValueError):
    """
    Raised when a persisted model file is malformed or truncated.

    Parameters
    ----------
    message : str
        Description of the problem.
    filename : str, optional
        The file being read.
    line_number : int, optional
        The (1-based) line of the file the problem was detected on.
    """

    def __init__(self, message: str, filename=None, line_number=None):
        self.filename = filename
        self.line_number = line_number
        location = ""
        if filename is not None:
            location = str(filename)
            if line_number is not None:
                location += f":{line_number}"
            location += ": "
        super().__init__(location + message)
