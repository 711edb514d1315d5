"""Module for building covariance functions from their textual form.

A specification is either the name of an atomic covariance function, such as
``CovSEiso``, or the name of a compound covariance function followed by two
specifications in parentheses, such as ``CovSum(CovSEiso, CovNoise)``.
Whitespace is ignored. The strings returned by
:py:meth:`lazygp.covariance_functions.CovarianceFunction.to_string` are valid
specifications.
"""

from lazygp.covariance_functions import (
    CompoundCovarianceFunction,
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
)


class CovFactory:
    """Factory for covariance functions."""

    def __init__(self):
        self.registry = {}
        for cov_class in (
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
        ):
            self.registry[cov_class.name] = cov_class

    def list(self):
        """Return the names of all known covariance functions."""
        return sorted(self.registry)

    def create(self, input_dim: int, key: str):
        """
        Create and initialize a covariance function.

        Parameters
        ----------
        input_dim : int
            Dimensionality of the input vectors.
        key : str
            Specification of the covariance function.

        Returns
        -------
        covf : CovarianceFunction
            The initialized covariance function, with all
            log-hyperparameters set to zero.

        Raises
        ------
        ValueError
            Raised when the specification is malformed or names an unknown
            covariance function.
        """
        spec = "".join(str(key).split())
        if len(spec) == 0:
            raise ValueError("Empty covariance function specification.")

        pos = spec.find("(")
        if pos == -1:
            name = spec
            args = []
        else:
            if not spec.endswith(")"):
                raise ValueError(
                    f"Malformed covariance function specification {key!r}."
                )
            name = spec[:pos]
            args = _split_arguments(spec[pos + 1 : -1], key)

        if name not in self.registry:
            raise ValueError(f"Unknown covariance function {name!r}.")
        cov_class = self.registry[name]

        if issubclass(cov_class, CompoundCovarianceFunction):
            if len(args) != 2:
                raise ValueError(
                    f"Covariance function {name} expects 2 arguments, "
                    f"{len(args)} passed instead."
                )
            first = self.create(input_dim, args[0])
            second = self.create(input_dim, args[1])
            return cov_class().init(input_dim, first, second)

        if len(args) != 0:
            raise ValueError(
                f"Covariance function {name} does not take arguments."
            )
        return cov_class().init(input_dim)


def _split_arguments(inner, key):
    """Split a comma separated argument list at nesting depth zero."""
    if len(inner) == 0:
        return []

    args = []
    depth = 0
    start = 0
    for i, c in enumerate(inner):
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth < 0:
                break
        elif c == "," and depth == 0:
            args.append(inner[start:i])
            start = i + 1
    if depth != 0:
        raise ValueError(
            f"Unbalanced parentheses in covariance function "
            f"specification {key!r}."
        )
    args.append(inner[start:])
    if any(len(arg) == 0 for arg in args):
        raise ValueError(
            f"Malformed covariance function specification {key!r}."
        )
    return args
