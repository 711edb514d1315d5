"""Module for Gaussian process regression."""

import copy
import logging
from textwrap import indent

import matplotlib.pyplot as plt
import numpy as np
import scipy as sp

from lazygp.cov_factory import CovFactory
from lazygp.covariance_functions import CovarianceFunction
from lazygp.errors import DimensionMismatchError, NotPositiveDefiniteError
from lazygp.model_file import read_model, write_model
from lazygp.sample_set import SampleSet


class GaussianProcess:
    """
    A Gaussian process for regression with a zero prior mean.

    The Cholesky factor of the kernel matrix and the weight vector
    ``alpha`` are cached. Adding samples or changing the hyperparameters
    invalidates the cache, and the next prediction recomputes it.

    The class does no locking: concurrent use from several threads needs
    external synchronization.

    Parameters
    ==========
    input_dim : int
        The dimension of the input vectors.
    covf_def : str or CovarianceFunction
        Either a covariance function specification understood by
        :py:class:`lazygp.cov_factory.CovFactory`, e.g.
        ``"CovSum(CovSEiso, CovNoise)"``, or an initialized covariance
        function. The Gaussian process keeps its own deep copy of it.
    options : dict, optional
        Additional options. Currently only ``display`` is read, which is
        one of ``"off"`` (default), ``"summary"`` or ``"full"`` and sets
        the logging level.
    """

    def __init__(self, input_dim: int, covf_def, options: dict = None):
        if isinstance(covf_def, CovarianceFunction):
            if covf_def.get_input_dim() != input_dim:
                raise DimensionMismatchError(
                    f"Covariance function is initialized for "
                    f"{covf_def.get_input_dim()} inputs, expected "
                    f"{input_dim}."
                )
            # Private copy, so that only set_hyperparameters can change the
            # hyperparameters behind the cache.
            self.covf = copy.deepcopy(covf_def)
        else:
            self.covf = CovFactory().create(input_dim, covf_def)

        self.input_dim = input_dim
        self.sampleset = SampleSet(input_dim)

        # Cached Cholesky factor, weights and training inputs.
        self.L = None
        self.alpha = None
        self._X = None
        self._cache_valid = False

        # Default options
        if options is None:
            options = {}
        self.display = options.get("display", "off")

        # Logging
        self.logger = logging.getLogger("GaussianProcess")
        # Remember to only add the handler once.
        if len(self.logger.handlers) == 0:
            self.logger.addHandler(logging.StreamHandler())
        self.logger.setLevel(logging.WARN)
        if self.display == "summary":
            self.logger.setLevel(logging.INFO)
        elif self.display == "full":
            self.logger.setLevel(logging.DEBUG)

    @classmethod
    def read(cls, filename, options: dict = None):
        """
        Load a Gaussian process from a model file written by
        :py:meth:`write`.

        Parameters
        ==========
        filename : str or path-like
            The model file.
        options : dict, optional
            Options passed on to the constructor.

        Returns
        =======
        gp : GaussianProcess
            The loaded Gaussian process.

        Raises
        ======
        ModelFileError
            Raised when the file is malformed or truncated.
        """
        covf, sampleset = read_model(filename)
        gp = cls(covf.get_input_dim(), covf, options)
        gp.sampleset = sampleset
        gp.logger.info(
            "Read Gaussian process with %d samples from %s.",
            sampleset.size(),
            filename,
        )
        return gp

    def __str__(self):
        dimension = "Dimension: " + str(self.input_dim) + "\n"

        param_N = self.covf.get_param_dim()
        cov = "Covariance function: " + self.covf.to_string()
        if param_N == 1:
            cov += ", " + str(param_N) + " parameter\n"
        else:
            cov += ", " + str(param_N) + " parameters\n"

        samples = "Samples: " + str(self.sampleset.size())

        title = "GaussianProcess:\n"
        body = dimension + cov + samples
        return title + indent(body, "    ")

    @property
    def cache_valid(self):
        """Whether the cached factorization matches the current state."""
        return self._cache_valid

    def add_pattern(self, x, y: float):
        """
        Add a training sample.

        Parameters
        ==========
        x : array_like, shape (input_dim,)
            The input vector.
        y : float
            The target value.

        Raises
        ======
        DimensionMismatchError
            Raised when ``x`` does not have ``input_dim`` elements. No
            sample is added in that case.
        ValueError
            Raised when ``x`` or ``y`` is not finite. No sample is added in
            that case.
        """
        self.sampleset.add(x, y)
        self._cache_valid = False

    def add_patterns(self, X, y):
        """
        Add several training samples at once.

        Parameters
        ==========
        X : array_like, shape (N, input_dim)
            The input vectors, one per row. For ``input_dim == 1`` a flat
            array of N inputs is accepted as well.
        y : array_like, shape (N,)
            The target values.

        Raises
        ======
        DimensionMismatchError
            Raised when the shapes of ``X`` and ``y`` do not agree with each
            other or with ``input_dim``. No sample is added in that case.
        ValueError
            Raised when ``X`` or ``y`` contains NaN or infinite values. No
            sample is added in that case.
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1 and self.input_dim == 1:
            X = X.reshape(-1, 1)
        X = np.atleast_2d(X)
        y = np.asarray(y, dtype=float).ravel()
        if X.ndim != 2 or X.shape[1] != self.input_dim:
            raise DimensionMismatchError(
                f"Expected inputs with {self.input_dim} columns, "
                f"got shape {X.shape}."
            )
        if X.shape[0] != y.size:
            raise DimensionMismatchError(
                f"Got {X.shape[0]} inputs but {y.size} targets."
            )
        if not np.all(np.isfinite(X)) or not np.all(np.isfinite(y)):
            raise ValueError("Inputs and targets need to be finite.")
        for i in range(0, X.shape[0]):
            self.sampleset.add(X[i], y[i])
        self._cache_valid = False

    def clear_sampleset(self):
        """Remove all training samples."""
        self.sampleset.clear()
        self._cache_valid = False

    def get_sample_count(self):
        """Return the number of training samples."""
        return self.sampleset.size()

    get_sampleset_size = get_sample_count

    def get_param_dim(self):
        """Return the number of hyperparameters."""
        return self.covf.get_param_dim()

    def get_hyperparameters(self):
        """Return a copy of the log-hyperparameters."""
        return self.covf.get_loghyper()

    def set_hyperparameters(self, p):
        """
        Set new log-hyperparameters for the covariance function.

        Parameters
        ==========
        p : array_like, shape (param_dim,)
            The new log-hyperparameters.

        Raises
        ======
        DimensionMismatchError
            Raised when ``p`` does not have ``param_dim`` elements. The
            hyperparameters and the cache are left untouched in that case.
        """
        if not self.covf.set_loghyper(p):
            raise DimensionMismatchError(
                f"Expected {self.covf.get_param_dim()} hyperparameters, "
                f"{np.size(p)} passed instead."
            )
        self._cache_valid = False

    set_params = set_hyperparameters

    def predict(self, x, compute_variance: bool = False):
        """
        Compute the posterior mean and variance at a given point.

        Without training samples the prior is returned, that is a mean of
        zero and the prior variance ``k(x, x)``.

        Parameters
        ==========
        x : array_like, shape (input_dim,)
            The point we want to predict the value at.
        compute_variance : bool, defaults to False
            Whether to compute the posterior variance.

        Returns
        =======
        mean : float
            Posterior mean at ``x``.
        variance : float or None
            Posterior variance at ``x``, clamped to be non-negative, or
            ``None`` if it was not requested.

        Raises
        ======
        DimensionMismatchError
            Raised when ``x`` does not have ``input_dim`` elements.
        NotPositiveDefiniteError
            Raised when the kernel matrix of the training samples cannot be
            factorized.
        """
        x = np.asarray(x, dtype=float).ravel()
        if x.size != self.input_dim:
            raise DimensionMismatchError(
                f"Expected an input vector with {self.input_dim} elements, "
                f"{x.size} passed instead."
            )
        mu, s2 = self._predict_points(
            np.reshape(x, (1, -1)), compute_variance
        )
        if compute_variance:
            return float(mu[0]), float(s2[0])
        return float(mu[0]), None

    def f(self, x):
        """Return the posterior mean at ``x``."""
        return self.predict(x)[0]

    def var(self, x):
        """Return the posterior variance at ``x``."""
        return self.predict(x, compute_variance=True)[1]

    def log_likelihood(self):
        """
        Compute the log marginal likelihood of the training targets.

        Returns
        =======
        lZ : float
            The log marginal likelihood, zero without training samples.

        Raises
        ======
        NotPositiveDefiniteError
            Raised when the kernel matrix cannot be factorized.
        """
        N = self.sampleset.size()
        if N == 0:
            return 0.0
        self._update_cache()
        y = self.sampleset.targets()
        lZ = (
            -np.dot(y, self.alpha) / 2
            - np.sum(np.log(np.diag(self.L)))
            - N * np.log(2 * np.pi) / 2
        )
        return float(lZ)

    def log_likelihood_gradient(self):
        """
        Compute the gradient of the log marginal likelihood with respect to
        the log-hyperparameters.

        Returns
        =======
        dlZ : ndarray, shape (param_dim,)
            The gradient, zero without training samples.

        Raises
        ======
        NotPositiveDefiniteError
            Raised when the kernel matrix cannot be factorized.
        """
        param_N = self.covf.get_param_dim()
        dlZ = np.zeros((param_N,))
        N = self.sampleset.size()
        if N == 0:
            return dlZ
        self._update_cache()

        _, dK = self.covf.compute(self._X, compute_grad=True)
        K_inv = sp.linalg.solve_triangular(
            self.L,
            sp.linalg.solve_triangular(
                self.L, np.eye(N), lower=True, check_finite=False
            ),
            lower=True,
            trans=1,
            check_finite=False,
        )
        Q = np.outer(self.alpha, self.alpha) - K_inv

        for i in range(0, param_N):
            dlZ[i] = np.sum(Q * dK[:, :, i]) / 2

        return dlZ

    def write(self, filename, precision: int = 10):
        """
        Write the Gaussian process to a model file which can be loaded
        with :py:meth:`read`. The cache is not stored.

        Parameters
        ==========
        filename : str or path-like
            The file to write.
        precision : int, defaults to 10
            Number of significant digits of each stored number.
        """
        write_model(filename, self.covf, self.sampleset, precision)
        self.logger.info(
            "Wrote Gaussian process with %d samples to %s.",
            self.sampleset.size(),
            filename,
        )

    def plot(self, lb: float = None, ub: float = None, ax=None):
        """
        Plot the posterior mean and a 95% credible band of a Gaussian
        process with one-dimensional inputs, together with the training
        samples.

        Parameters
        ==========
        lb : float, optional
            Lower bound of the plotted range.
        ub : float, optional
            Upper bound of the plotted range.
        ax : matplotlib.axes.Axes, optional
            The axes to draw on. If not given a new figure is created and
            shown.

        Returns
        =======
        ax : matplotlib.axes.Axes
            The axes that were drawn on.

        Raises
        ======
        ValueError
            Raised when the inputs are not one-dimensional.
        """
        if self.input_dim != 1:
            raise ValueError(
                "Plotting is only supported for one-dimensional inputs."
            )

        X = self.sampleset.inputs()
        y = self.sampleset.targets()
        if X.shape[0] > 0:
            width = np.max(X) - np.min(X)
            if width == 0:
                width = 1.0
            if lb is None:
                lb = np.min(X) - 0.1 * width
            if ub is None:
                ub = np.max(X) + 0.1 * width
        else:
            if lb is None:
                lb = -1.0
            if ub is None:
                ub = 1.0

        x_N = 200  # Grid points
        xx = np.reshape(np.linspace(lb, ub, x_N), (-1, 1))
        fmu, fs2 = self._predict_points(xx, True)
        flo = fmu - 1.96 * np.sqrt(fs2)
        fhi = fmu + 1.96 * np.sqrt(fs2)

        show = ax is None
        if show:
            _, ax = plt.subplots()

        linewidth = 1
        ax.plot(xx[:, 0], fmu, "-k", linewidth=linewidth)
        ax.plot(xx[:, 0], fhi, "-", color=(0.8, 0.8, 0.8), linewidth=linewidth)
        ax.plot(xx[:, 0], flo, "-", color=(0.8, 0.8, 0.8), linewidth=linewidth)
        if X.shape[0] > 0:
            ax.scatter(X[:, 0], y, color="blue")
        ax.set_xlim(lb, ub)
        ax.set_xlabel("x")
        ax.set_ylabel("y")
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)

        if show:
            plt.show()
        return ax

    def _predict_points(self, X_star, compute_variance):
        """Posterior mean and variance at the rows of ``X_star``."""
        N_star = X_star.shape[0]

        if self.sampleset.size() == 0:
            # No data, return the prior.
            mu = np.zeros((N_star,))
            if not compute_variance:
                return mu, None
            return mu, self.covf.compute(X_star, compute_diag=True)

        self._update_cache()

        Ks = self.covf.compute(self._X, X_star)
        mu = np.dot(Ks.T, self.alpha)  # Conditional mean
        if not compute_variance:
            return mu, None

        kss = self.covf.compute(X_star, compute_diag=True)
        V = sp.linalg.solve_triangular(
            self.L, Ks, lower=True, check_finite=False
        )
        s2 = kss - np.sum(V * V, 0)  # predictive variance
        # remove numerical noise, i.e. negative variances
        s2 = np.maximum(s2, 0)
        return mu, s2

    def _update_cache(self):
        """
        Recompute the Cholesky factor of the kernel matrix and the weight
        vector if the cache is stale.

        Raises
        ------
        NotPositiveDefiniteError
            Raised when the Cholesky decomposition fails. The cache stays
            stale in that case.
        """
        if self._cache_valid:
            return

        X = self.sampleset.inputs()
        y = self.sampleset.targets()
        self.logger.debug(
            "Computing Cholesky factorization for %d samples.", X.shape[0]
        )

        K = self.covf.compute(X)
        if not np.all(np.isfinite(K)):
            raise NotPositiveDefiniteError(
                "Kernel matrix contains non-finite values."
            )
        try:
            L = sp.linalg.cholesky(K, lower=True, check_finite=False)
        except sp.linalg.LinAlgError as err:
            raise NotPositiveDefiniteError(
                "Kernel matrix is not positive definite."
            ) from err

        alpha = sp.linalg.solve_triangular(
            L,
            sp.linalg.solve_triangular(L, y, lower=True, check_finite=False),
            lower=True,
            trans=1,
            check_finite=False,
        )

        self.L = L
        self.alpha = alpha
        self._X = X
        self._cache_valid = True
