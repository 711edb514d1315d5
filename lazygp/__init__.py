"""Gaussian process regression with a lazily updated Cholesky factor."""

import lazygp.cov_factory
import lazygp.covariance_functions
import lazygp.errors
from lazygp.cov_factory import CovFactory
from lazygp.errors import (
    DimensionMismatchError,
    ModelFileError,
    NotPositiveDefiniteError,
)
from lazygp.gaussian_process import GaussianProcess
from lazygp.sample_set import Sample, SampleSet
