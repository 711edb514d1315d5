"""Module for covariance functions used by the Gaussian process.

All hyperparameters are stored in log space. A covariance function is
created empty and configured once with ``init``: atomic covariance
functions only need the input dimensionality, compound ones additionally
take ownership of two initialized covariance functions.
"""

from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial.distance import cdist, pdist, squareform


class CovarianceFunction(ABC):
    """Abstract base class for covariance functions."""

    #: Name used by :py:meth:`to_string` and by the covariance factory.
    name = None

    def __init__(self):
        self.input_dim = None
        self.param_dim = None
        self.loghyper = None

    @abstractmethod
    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        """
        Compute the covariance matrix for given training points
        and test points, using the current log-hyperparameters.

        Parameters
        ----------
        X : ndarray, shape (N, D)
            A 2D array where each row is a training point.
        X_star : ndarray, shape (M, D), optional
            A 2D array where each row is a test point. If this is not
            given, the self-covariance matrix is being computed.
        compute_diag : bool, defaults to False
            Whether to only compute the diagonal of the self-covariance
            matrix.
        compute_grad : bool, defaults to False
            Whether to compute the gradient with respect to the
            log-hyperparameters.

        Returns
        -------
        K : ndarray
            The covariance matrix which is by default of shape ``(N, N)``,
            ``(N, M)`` if ``X_star`` is given and ``(N,)`` if
            ``compute_diag = True``.
        dK : ndarray, shape (N, M, param_dim), optional
            The gradient of the covariance matrix with respect to the
            log-hyperparameters.

        Raises
        ------
        ValueError
            Raised when the covariance function has not been initialized,
            when the inputs do not have ``input_dim`` columns, or when both
            ``compute_diag`` and ``compute_grad`` are requested.
        """

    @abstractmethod
    def to_string(self):
        """
        Return a string representation of this covariance function which
        can be parsed back by :py:class:`lazygp.cov_factory.CovFactory`.
        """

    def evaluate(self, x1: np.ndarray, x2: np.ndarray):
        """
        Compute the covariance of two input vectors.

        Parameters
        ----------
        x1 : array_like, shape (input_dim,)
            First input vector.
        x2 : array_like, shape (input_dim,)
            Second input vector.

        Returns
        -------
        k : float
            The covariance of ``x1`` and ``x2``. Passing the same object
            twice yields the variance of that observation.
        """
        K = self.compute(*self._as_rows(x1, x2))
        return float(K[0, 0])

    def gradient(self, x1: np.ndarray, x2: np.ndarray):
        """
        Compute the gradient of the covariance of two input vectors with
        respect to the log-hyperparameters.

        Parameters
        ----------
        x1 : array_like, shape (input_dim,)
            First input vector.
        x2 : array_like, shape (input_dim,)
            Second input vector.

        Returns
        -------
        grad : ndarray, shape (param_dim,)
            The partial derivatives, in the order of the hyperparameter
            vector.
        """
        _, dK = self.compute(*self._as_rows(x1, x2), compute_grad=True)
        return dK[0, 0, :].copy()

    def set_loghyper(self, p):
        """
        Replace the log-hyperparameter vector.

        This does not invalidate any cache held by a Gaussian process using
        this covariance function; that is up to the caller.

        Parameters
        ----------
        p : array_like, shape (param_dim,)
            The new log-hyperparameters.

        Returns
        -------
        success : bool
            ``False`` if ``p`` does not have ``param_dim`` elements, in which
            case nothing is changed.
        """
        p = np.array(p, dtype=float).ravel()
        if self.param_dim is None or p.size != self.param_dim:
            return False
        self.loghyper = p
        return True

    def get_param_dim(self):
        """Return the number of hyperparameters."""
        return self.param_dim

    def get_input_dim(self):
        """Return the input dimensionality."""
        return self.input_dim

    def get_loghyper(self):
        """Return a copy of the log-hyperparameter vector."""
        return self.loghyper.copy()

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(input_dim={self.input_dim}, "
            f"loghyper={self.loghyper!r})"
        )

    def _as_rows(self, x1, x2):
        X = np.reshape(np.asarray(x1, dtype=float), (1, -1))
        # The same observation twice is a self-covariance.
        if x2 is x1:
            return X, None
        return X, np.reshape(np.asarray(x2, dtype=float), (1, -1))

    def _check_inputs(self, X, X_star, compute_diag, compute_grad):
        if self.param_dim is None:
            raise ValueError(
                f"Covariance function {self.name} has not been initialized."
            )
        if X.ndim != 2 or X.shape[1] != self.input_dim:
            raise ValueError(
                f"Expected inputs with {self.input_dim} columns, "
                f"got shape {X.shape}."
            )
        if X_star is not None and (
            X_star.ndim != 2 or X_star.shape[1] != self.input_dim
        ):
            raise ValueError(
                f"Expected test inputs with {self.input_dim} columns, "
                f"got shape {X_star.shape}."
            )
        if compute_diag and compute_grad:
            raise ValueError(
                "Gradients are not available for the diagonal of the "
                "self-covariance matrix."
            )


class AtomicCovarianceFunction(CovarianceFunction):
    """Base class for covariance functions that only depend on the input
    dimensionality."""

    def init(self, input_dim: int):
        """
        Configure the covariance function for a given input dimensionality.
        All log-hyperparameters start at zero.

        Parameters
        ----------
        input_dim : int
            Dimensionality of the input vectors.

        Raises
        ------
        ValueError
            Raised when the covariance function was already initialized or
            when ``input_dim`` is not positive.
        """
        if self.input_dim is not None:
            raise ValueError(
                f"Covariance function {self.name} is already initialized."
            )
        if input_dim < 1:
            raise ValueError("Input dimensionality needs to be positive.")
        self.input_dim = int(input_dim)
        self.param_dim = self.hyperparameter_count(self.input_dim)
        self.loghyper = np.zeros((self.param_dim,))
        return self

    @abstractmethod
    def hyperparameter_count(self, D: int):
        """
        Return the number of hyperparameters this covariance function has.

        Parameters
        ----------
        D : int
            The dimensionality of the kernel.

        Returns
        -------
        count : int
            The number of hyperparameters.
        """

    def to_string(self):
        return self.name


class CompoundCovarianceFunction(CovarianceFunction):
    """
    Base class for covariance functions combining two other covariance
    functions.

    The first covariance function owns the leading ``first.param_dim``
    entries of the hyperparameter vector, the second one the rest.
    """

    def __init__(self):
        super().__init__()
        self.first = None
        self.second = None

    def init(
        self,
        input_dim: int,
        first: CovarianceFunction,
        second: CovarianceFunction,
    ):
        """
        Configure the covariance function by taking ownership of two
        initialized covariance functions.

        Parameters
        ----------
        input_dim : int
            Dimensionality of the input vectors.
        first : CovarianceFunction
            First covariance function of the compound.
        second : CovarianceFunction
            Second covariance function of the compound.

        Raises
        ------
        ValueError
            Raised when the covariance function was already initialized,
            or when one of the children is not initialized for
            ``input_dim``.
        """
        if self.input_dim is not None:
            raise ValueError(
                f"Covariance function {self.name} is already initialized."
            )
        for child in (first, second):
            if child.get_input_dim() != input_dim:
                raise ValueError(
                    f"Covariance function {child.name} is not initialized "
                    f"for input dimensionality {input_dim}."
                )
        self.input_dim = int(input_dim)
        self.first = first
        self.second = second
        self.param_dim = first.get_param_dim() + second.get_param_dim()
        self.loghyper = np.concatenate(
            (first.get_loghyper(), second.get_loghyper())
        )
        return self

    def set_loghyper(self, p):
        if not super().set_loghyper(p):
            return False
        split = self.first.get_param_dim()
        self.first.set_loghyper(self.loghyper[:split])
        self.second.set_loghyper(self.loghyper[split:])
        return True

    def get_loghyper(self):
        return np.concatenate(
            (self.first.get_loghyper(), self.second.get_loghyper())
        )

    def to_string(self):
        return (
            f"{self.name}({self.first.to_string()}, "
            f"{self.second.to_string()})"
        )

    def _compute_children(self, X, X_star, compute_diag, compute_grad):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        return (
            self.first.compute(X, X_star, compute_diag, compute_grad),
            self.second.compute(X, X_star, compute_diag, compute_grad),
        )


def _sq_dist(X, X_star=None):
    """Squared euclidean distances between the rows of the inputs."""
    if X_star is None:
        return squareform(pdist(X, "sqeuclidean"))
    return cdist(X, X_star, "sqeuclidean")


class CovSEiso(AtomicCovarianceFunction):
    """
    Isotropic squared exponential covariance function.

    Hyperparameters are the log-lengthscale and the log-outputscale.
    """

    name = "CovSEiso"

    def hyperparameter_count(self, D: int):
        return 2

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        ell = np.exp(self.loghyper[0])
        sf2 = np.exp(2 * self.loghyper[1])

        if compute_diag:
            return np.full((X.shape[0],), sf2)

        tmp = _sq_dist(X / ell, None if X_star is None else X_star / ell)
        K = sf2 * np.exp(-tmp / 2)

        if compute_grad:
            dK = np.zeros((2,) + K.shape)
            # Gradient of cov length scale.
            dK[0] = K * tmp
            # Gradient of cov output scale.
            dK[1] = 2 * K
            return K, dK.transpose(1, 2, 0)

        return K


class CovSEard(AtomicCovarianceFunction):
    """
    Squared exponential covariance function with automatic relevance
    determination.

    Hyperparameters are one log-lengthscale per input dimension followed by
    the log-outputscale.
    """

    name = "CovSEard"

    def hyperparameter_count(self, D: int):
        return D + 1

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        D = self.input_dim
        ell = np.exp(self.loghyper[0:D])
        sf2 = np.exp(2 * self.loghyper[D])

        if compute_diag:
            return np.full((X.shape[0],), sf2)

        tmp = _sq_dist(X / ell, None if X_star is None else X_star / ell)
        K = sf2 * np.exp(-tmp / 2)

        if compute_grad:
            dK = np.zeros((self.param_dim,) + K.shape)
            for i in range(0, D):
                X_i = X[:, i : i + 1] / ell[i]
                X_star_i = None
                if X_star is not None:
                    X_star_i = X_star[:, i : i + 1] / ell[i]
                # Gradient of cov length scales
                dK[i] = K * _sq_dist(X_i, X_star_i)
            # Gradient of cov output scale.
            dK[D] = 2 * K
            return K, dK.transpose(1, 2, 0)

        return K


class _MaternIso(AtomicCovarianceFunction):
    """
    Isotropic Matern covariance function.

    Hyperparameters are the log-lengthscale and the log-outputscale.
    """

    degree = None

    def hyperparameter_count(self, D: int):
        return 2

    @abstractmethod
    def _f(self, z):
        """Polynomial factor of the kernel in terms of ``z``."""

    @abstractmethod
    def _df(self, z):
        """Derivative factor, ``-z * d/dz (f(z) exp(-z))`` times ``exp(z)``."""

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        ell = np.exp(self.loghyper[0])
        sf2 = np.exp(2 * self.loghyper[1])

        if compute_diag:
            return np.full((X.shape[0],), sf2)

        scale = np.sqrt(self.degree) / ell
        z = np.sqrt(
            _sq_dist(X * scale, None if X_star is None else X_star * scale)
        )
        K = sf2 * self._f(z) * np.exp(-z)

        if compute_grad:
            dK = np.zeros((2,) + K.shape)
            dK[0] = sf2 * self._df(z) * np.exp(-z)
            dK[1] = 2 * K
            return K, dK.transpose(1, 2, 0)

        return K


class CovMatern3iso(_MaternIso):
    """Isotropic Matern covariance function with nu = 3/2."""

    name = "CovMatern3iso"
    degree = 3

    def _f(self, z):
        return 1 + z

    def _df(self, z):
        return z * z


class CovMatern5iso(_MaternIso):
    """Isotropic Matern covariance function with nu = 5/2."""

    name = "CovMatern5iso"
    degree = 5

    def _f(self, z):
        return 1 + z * (1 + z / 3)

    def _df(self, z):
        return z * z * (1 + z) / 3


class CovRQiso(AtomicCovarianceFunction):
    """
    Isotropic rational quadratic covariance function.

    Hyperparameters are the log-lengthscale, the log-outputscale and the
    log-shape.
    """

    name = "CovRQiso"

    def hyperparameter_count(self, D: int):
        return 3

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        ell = np.exp(self.loghyper[0])
        sf2 = np.exp(2 * self.loghyper[1])
        alpha = np.exp(self.loghyper[2])

        if compute_diag:
            return np.full((X.shape[0],), sf2)

        tmp = _sq_dist(X / ell, None if X_star is None else X_star / ell)
        M = 1 + 0.5 * tmp / alpha
        K = sf2 * M ** (-alpha)

        if compute_grad:
            dK = np.zeros((3,) + K.shape)
            # Gradient respect of length scale.
            dK[0] = sf2 * M ** (-alpha - 1) * tmp
            # Gradient of cov output scale.
            dK[1] = 2 * K
            # Gradient respect of alpha.
            dK[2] = K * (0.5 * tmp / M - alpha * np.log(M))
            return K, dK.transpose(1, 2, 0)

        return K


class CovLinearard(AtomicCovarianceFunction):
    """
    Linear covariance function with automatic relevance determination.

    Hyperparameters are one log-lengthscale per input dimension.
    """

    name = "CovLinearard"

    def hyperparameter_count(self, D: int):
        return D

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        ell = np.exp(self.loghyper)
        a = X / ell

        if compute_diag:
            return np.sum(a * a, 1)

        b = a if X_star is None else X_star / ell
        K = np.dot(a, b.T)

        if compute_grad:
            dK = np.zeros((self.param_dim,) + K.shape)
            for i in range(0, self.input_dim):
                dK[i] = -2 * np.outer(a[:, i], b[:, i])
            return K, dK.transpose(1, 2, 0)

        return K


class CovLinearone(AtomicCovarianceFunction):
    """
    Linear covariance function with a bias term,
    ``k(x1, x2) = t^2 (1 + x1 . x2)``.

    The single hyperparameter is ``log(t)``.
    """

    name = "CovLinearone"

    def hyperparameter_count(self, D: int):
        return 1

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        it2 = np.exp(2 * self.loghyper[0])

        if compute_diag:
            return it2 * (1 + np.sum(X * X, 1))

        b = X if X_star is None else X_star
        K = it2 * (1 + np.dot(X, b.T))

        if compute_grad:
            return K, (2 * K)[:, :, np.newaxis]

        return K


class CovNoise(AtomicCovarianceFunction):
    """
    Independent covariance function (white noise).

    The noise belongs to an observation rather than to an input location:
    it only shows up in self-covariances (``X_star`` not given, or the same
    vector object passed twice to ``evaluate``), so two distinct samples at
    the same input are independent. The single hyperparameter is the log of
    the noise standard deviation.
    """

    name = "CovNoise"

    def hyperparameter_count(self, D: int):
        return 1

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        self._check_inputs(X, X_star, compute_diag, compute_grad)
        sn2 = np.exp(2 * self.loghyper[0])

        if compute_diag:
            return np.full((X.shape[0],), sn2)

        if X_star is None:
            K = sn2 * np.eye(X.shape[0])
        else:
            K = np.zeros((X.shape[0], X_star.shape[0]))

        if compute_grad:
            return K, (2 * K)[:, :, np.newaxis]

        return K


class CovSum(CompoundCovarianceFunction):
    """Sum of two covariance functions."""

    name = "CovSum"

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        first, second = self._compute_children(
            X, X_star, compute_diag, compute_grad
        )
        if compute_grad:
            K1, dK1 = first
            K2, dK2 = second
            return K1 + K2, np.concatenate((dK1, dK2), axis=2)
        return first + second


class CovProd(CompoundCovarianceFunction):
    """Product of two covariance functions."""

    name = "CovProd"

    def compute(
        self,
        X: np.ndarray,
        X_star: np.ndarray = None,
        compute_diag: bool = False,
        compute_grad: bool = False,
    ):
        first, second = self._compute_children(
            X, X_star, compute_diag, compute_grad
        )
        if compute_grad:
            K1, dK1 = first
            K2, dK2 = second
            # Product rule.
            dK = np.concatenate(
                (dK1 * K2[:, :, np.newaxis], K1[:, :, np.newaxis] * dK2),
                axis=2,
            )
            return K1 * K2, dK
        return first * second
