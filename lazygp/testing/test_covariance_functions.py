import numpy as np
import pytest

from lazygp.cov_factory import CovFactory
from lazygp.covariance_functions import (
    CovarianceFunction,
    CovLinearard,
    CovLinearone,
    CovMatern3iso,
    CovMatern5iso,
    CovNoise,
    CovProd,
    CovRQiso,
    CovSEard,
    CovSEiso,
    CovSum,
    _MaternIso,
)

ALL_SPECS = [
    "CovSEiso",
    "CovSEard",
    "CovMatern3iso",
    "CovMatern5iso",
    "CovRQiso",
    "CovLinearard",
    "CovLinearone",
    "CovNoise",
    "CovSum(CovSEiso, CovNoise)",
    "CovProd(CovSEard, CovLinearone)",
    "CovSum(CovProd(CovMatern5iso, CovRQiso), CovSum(CovLinearard, CovNoise))",
]


def _random_covf(spec, D):
    covf = CovFactory().create(D, spec)
    diag_cov = np.eye(covf.get_param_dim()) * (0.2)
    hyp = np.random.multivariate_normal(
        np.zeros(covf.get_param_dim()), diag_cov
    )
    assert covf.set_loghyper(hyp)
    return covf


def test_hyperparameter_counts():
    D = 3
    assert CovSEiso().init(D).get_param_dim() == 2
    assert CovSEard().init(D).get_param_dim() == D + 1
    assert CovMatern3iso().init(D).get_param_dim() == 2
    assert CovMatern5iso().init(D).get_param_dim() == 2
    assert CovRQiso().init(D).get_param_dim() == 3
    assert CovLinearard().init(D).get_param_dim() == D
    assert CovLinearone().init(D).get_param_dim() == 1
    assert CovNoise().init(D).get_param_dim() == 1

    covf = CovProd().init(D, CovSEard().init(D), CovRQiso().init(D))
    assert covf.get_param_dim() == D + 1 + 3
    assert covf.get_input_dim() == D
    assert np.all(covf.get_loghyper() == 0)


def test_init_sanity_checks():
    covf = CovSEiso()
    covf.init(2)
    with pytest.raises(ValueError) as execinfo:
        covf.init(2)
    assert "is already initialized" in execinfo.value.args[0]

    with pytest.raises(ValueError) as execinfo:
        CovSEiso().init(0)
    assert "needs to be positive" in execinfo.value.args[0]

    with pytest.raises(ValueError) as execinfo:
        CovSum().init(2, CovSEiso().init(2), CovNoise().init(3))
    assert "is not initialized for input dimensionality 2" in (
        execinfo.value.args[0]
    )

    with pytest.raises(ValueError) as execinfo:
        CovSEiso().compute(np.ones((3, 2)))
    assert "has not been initialized" in execinfo.value.args[0]


def test_compute_sanity_checks():
    covf = CovSEiso().init(3)
    with pytest.raises(ValueError) as execinfo:
        covf.compute(np.ones((5, 2)))
    assert "Expected inputs with 3 columns" in execinfo.value.args[0]
    with pytest.raises(ValueError) as execinfo:
        covf.compute(np.ones((5, 3)), np.ones((4, 2)))
    assert "Expected test inputs with 3 columns" in execinfo.value.args[0]
    with pytest.raises(ValueError) as execinfo:
        covf.compute(np.ones((5, 3)), compute_diag=True, compute_grad=True)
    assert "Gradients are not available" in execinfo.value.args[0]


def test_set_loghyper():
    covf = CovSEard().init(2)
    hyp = np.array([0.1, 0.2, 0.3])
    assert covf.set_loghyper(hyp)
    assert np.all(covf.get_loghyper() == hyp)

    # The stored vector is a copy.
    hyp[0] = 5.0
    assert covf.get_loghyper()[0] == 0.1
    covf.get_loghyper()[1] = 5.0
    assert covf.get_loghyper()[1] == 0.2

    assert not covf.set_loghyper(np.ones(2))
    assert not covf.set_loghyper(np.ones(4))
    assert np.all(covf.get_loghyper() == np.array([0.1, 0.2, 0.3]))


def test_compound_set_loghyper_splits_vector():
    first = CovSEiso().init(1)
    second = CovNoise().init(1)
    covf = CovSum().init(1, first, second)
    assert covf.set_loghyper([0.5, -0.5, -2.0])
    assert np.all(first.get_loghyper() == np.array([0.5, -0.5]))
    assert np.all(second.get_loghyper() == np.array([-2.0]))
    assert np.all(covf.get_loghyper() == np.array([0.5, -0.5, -2.0]))

    assert not covf.set_loghyper([1.0, 1.0])
    assert np.all(first.get_loghyper() == np.array([0.5, -0.5]))
    assert np.all(second.get_loghyper() == np.array([-2.0]))


def test_known_values():
    x1 = np.array([0.0])
    x2 = np.array([1.0])

    assert np.isclose(CovSEiso().init(1).evaluate(x1, x2), np.exp(-0.5))
    assert np.isclose(
        CovMatern3iso().init(1).evaluate(x1, x2),
        (1 + np.sqrt(3)) * np.exp(-np.sqrt(3)),
    )
    assert np.isclose(
        CovMatern5iso().init(1).evaluate(x1, x2),
        (1 + np.sqrt(5) + 5 / 3) * np.exp(-np.sqrt(5)),
    )
    assert np.isclose(CovRQiso().init(1).evaluate(x1, x2), 2 / 3)

    covf = CovSEard().init(2)
    covf.set_loghyper([0.0, np.log(2.0), 0.0])
    assert np.isclose(covf.evaluate([0.0, 0.0], [1.0, 2.0]), np.exp(-1))

    covf = CovLinearard().init(2)
    covf.set_loghyper([np.log(2.0), 0.0])
    assert np.isclose(covf.evaluate([2.0, 1.0], [4.0, 3.0]), 5.0)

    covf = CovLinearone().init(2)
    assert np.isclose(covf.evaluate([1.0, 2.0], [3.0, 4.0]), 12.0)

    covf = CovSEiso().init(1)
    covf.set_loghyper([0.0, np.log(2.0)])
    assert np.isclose(covf.evaluate(x1, x1), 4.0)


def test_noise_belongs_to_observation():
    covf = CovNoise().init(2)
    covf.set_loghyper([np.log(0.5)])
    x = np.array([0.3, 0.4])
    assert np.isclose(covf.evaluate(x, x), 0.25)
    assert covf.evaluate(x, x.copy()) == 0.0

    X = np.array([[0.3, 0.4], [0.3, 0.4], [1.0, 1.0]])
    assert np.allclose(covf.compute(X), 0.25 * np.eye(3))
    assert np.all(covf.compute(X, X.copy()) == 0)
    assert np.allclose(covf.compute(X, compute_diag=True), 0.25)


def test_compound_values():
    D = 2
    X = np.random.standard_normal(size=(6, D))
    first = _random_covf("CovMatern3iso", D)
    second = _random_covf("CovLinearone", D)
    K1 = first.compute(X)
    K2 = second.compute(X)

    covf = CovSum().init(D, _copy_covf(first, D), _copy_covf(second, D))
    assert np.allclose(covf.compute(X), K1 + K2)

    covf = CovProd().init(D, _copy_covf(first, D), _copy_covf(second, D))
    assert np.allclose(covf.compute(X), K1 * K2)
    assert np.isclose(
        covf.evaluate(X[0], X[1]),
        first.evaluate(X[0], X[1]) * second.evaluate(X[0], X[1]),
    )


def _copy_covf(covf, D):
    new_covf = CovFactory().create(D, covf.to_string())
    new_covf.set_loghyper(covf.get_loghyper())
    return new_covf


@pytest.mark.parametrize("spec", ALL_SPECS)
def test_kernel_symmetry(spec):
    D = 3
    N = 8
    covf = _random_covf(spec, D)
    X = np.random.standard_normal(size=(N, D))

    K = covf.compute(X)
    assert K.shape == (N, N)
    assert np.allclose(K, K.T)

    for i in range(0, N):
        for j in range(0, N):
            assert np.isclose(
                covf.evaluate(X[i], X[j]), covf.evaluate(X[j], X[i])
            )


@pytest.mark.parametrize("spec", ALL_SPECS)
def test_evaluate_agrees_with_compute(spec):
    D = 2
    covf = _random_covf(spec, D)
    X = np.random.standard_normal(size=(5, D))
    X_star = np.random.standard_normal(size=(4, D))

    K = covf.compute(X)
    Ks, dKs = covf.compute(X, X_star, compute_grad=True)
    assert Ks.shape == (5, 4)
    assert dKs.shape == (5, 4, covf.get_param_dim())

    for i in range(0, 5):
        x_i = X[i]
        assert np.isclose(covf.evaluate(x_i, x_i), K[i, i])
        for j in range(0, 4):
            assert np.isclose(covf.evaluate(X[i], X_star[j]), Ks[i, j])
            assert np.allclose(covf.gradient(X[i], X_star[j]), dKs[i, j])

    assert np.allclose(covf.compute(X, compute_diag=True), np.diag(K))


@pytest.mark.parametrize("spec", ALL_SPECS)
def test_kernel_gradient(spec):
    D = 3
    N = 10
    covf = _random_covf(spec, D)
    X = np.random.standard_normal(size=(N, D)) * 0.5
    X_star = np.random.standard_normal(size=(4, D)) * 0.5

    _test_kernel_gradient_(covf, X)
    _test_kernel_gradient_(covf, X, X_star)


def test_gradient_length():
    covf = CovFactory().create(2, "CovProd(CovSEard, CovNoise)")
    grad = covf.gradient([0.0, 1.0], [1.0, 0.0])
    assert grad.shape == (covf.get_param_dim(),)


def test_to_string():
    assert CovSEiso().init(1).to_string() == "CovSEiso"
    covf = CovSum().init(
        2,
        CovProd().init(2, CovSEard().init(2), CovLinearone().init(2)),
        CovNoise().init(2),
    )
    assert covf.to_string() == (
        "CovSum(CovProd(CovSEard, CovLinearone), CovNoise)"
    )
    assert str(covf) == covf.to_string()
    assert isinstance(covf, CovarianceFunction)


def _test_kernel_gradient_(
    covf: CovarianceFunction,
    X: np.ndarray,
    X_star: np.ndarray = None,
    h=1e-5,
    eps=1e-4,
):
    """
    Test the gradient of the covariance function via the five-point
    stencil difference method.

    Parameters
    ----------
    covf : CovarianceFunction
        The covariance function, with its log-hyperparameters set.
    X : ndarray, shape (N, D)
    X_star : ndarray, shape (M, D), optional
    h: float
        Grid spacing.
    eps: float
        Error tolerance.
    """
    K, dK = covf.compute(X, X_star, compute_grad=True)
    hyp = covf.get_loghyper()

    finite_diff = np.zeros((K.shape[0], K.shape[1], hyp.size))

    def f(idx, delta):
        hyp_new = hyp.copy()
        hyp_new[idx] += delta
        covf.set_loghyper(hyp_new)
        return covf.compute(X, X_star)

    for idx in range(0, hyp.size):
        f_2h = f(idx, 2.0 * h)
        f_h = f(idx, h)
        f_neg_h = f(idx, -h)
        f_neg_2h = f(idx, -2.0 * h)
        finite_diff[:, :, idx] = (
            -f_2h + 8.0 * f_h - 8.0 * f_neg_h + f_neg_2h
        ) / (12 * h)

    covf.set_loghyper(hyp)
    assert np.all(np.abs(finite_diff - dK) <= eps)


def test_matern_requires_degree_hooks():
    with pytest.raises(TypeError):
        _MaternIso()

    class CovMaternNoDerivative(_MaternIso):
        degree = 3

        def _f(self, z):
            return 1 + z

    with pytest.raises(TypeError):
        CovMaternNoDerivative()
    assert isinstance(CovMatern3iso(), _MaternIso)
