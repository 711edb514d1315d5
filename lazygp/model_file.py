"""Module for reading and writing Gaussian process model files.

A model file is a line oriented text file. Empty lines and lines starting
with ``#`` are ignored. The remaining lines are, in order, the input
dimensionality, the covariance function specification, the
log-hyperparameters separated by whitespace, and one line per training
sample holding the target followed by the input vector.
"""

import time

from lazygp.cov_factory import CovFactory
from lazygp.errors import ModelFileError
from lazygp.sample_set import SampleSet


def read_model(filename):
    """
    Read a model file.

    Parameters
    ----------
    filename : str or path-like
        The file to read.

    Returns
    -------
    covf : CovarianceFunction
        The covariance function with the stored log-hyperparameters.
    sampleset : SampleSet
        The training samples in file order.

    Raises
    ------
    ModelFileError
        Raised when the header is incomplete, a line cannot be parsed or
        the file is not UTF-8 text.
    """
    stage = 0
    covf = None
    sampleset = None

    with open(filename, "r", encoding="utf-8") as infile:
        try:
            for line_number, line in enumerate(infile, start=1):
                s = line.strip()
                # Ignore empty lines and comments.
                if len(s) == 0 or s.startswith("#"):
                    continue

                if stage == 0:
                    try:
                        input_dim = int(s)
                    except ValueError:
                        raise ModelFileError(
                            f"Invalid input dimensionality {s!r}.",
                            filename,
                            line_number,
                        ) from None
                    if input_dim < 1:
                        raise ModelFileError(
                            "Input dimensionality needs to be positive.",
                            filename,
                            line_number,
                        )
                    sampleset = SampleSet(input_dim)
                elif stage == 1:
                    try:
                        covf = CovFactory().create(input_dim, s)
                    except ValueError as err:
                        raise ModelFileError(
                            str(err), filename, line_number
                        ) from err
                elif stage == 2:
                    params = _parse_floats(s, filename, line_number)
                    if not covf.set_loghyper(params):
                        raise ModelFileError(
                            f"Expected {covf.get_param_dim()} "
                            f"log-hyperparameters, {len(params)} found "
                            "instead.",
                            filename,
                            line_number,
                        )
                else:
                    values = _parse_floats(s, filename, line_number)
                    if len(values) != input_dim + 1:
                        raise ModelFileError(
                            f"Expected a target and {input_dim} inputs, "
                            f"{len(values)} values found instead.",
                            filename,
                            line_number,
                        )
                    try:
                        sampleset.add(values[1:], values[0])
                    except ValueError as err:
                        raise ModelFileError(
                            str(err), filename, line_number
                        ) from err
                stage += 1
        except UnicodeDecodeError as err:
            raise ModelFileError(
                "File is not valid UTF-8 text.", filename
            ) from err

    if stage < 3:
        raise ModelFileError(
            "Incomplete header, expected the input dimensionality, the "
            "covariance function and the log-hyperparameters.",
            filename,
        )

    return covf, sampleset


def write_model(filename, covf, sampleset, precision: int = 10):
    """
    Write a model file.

    Parameters
    ----------
    filename : str or path-like
        The file to write.
    covf : CovarianceFunction
        The covariance function.
    sampleset : SampleSet
        The training samples.
    precision : int, defaults to 10
        Number of significant digits of each stored number.

    Raises
    ------
    ValueError
        Raised when ``precision`` is below 10.
    """
    if precision < 10:
        raise ValueError("At least 10 significant digits need to be written.")
    fmt = f"%.{precision}g"

    lines = [
        "# " + time.strftime("%c"),
        "",
        "# input dimensionality",
        str(covf.get_input_dim()),
        "",
        "# covariance function",
        covf.to_string(),
        "",
        "# log-hyperparameter",
        " ".join(fmt % p for p in covf.get_loghyper()),
        "",
        "# data (target value in first column)",
    ]
    for sample in sampleset:
        lines.append(" ".join(fmt % v for v in (sample.y, *sample.x)))

    with open(filename, "w", encoding="utf-8") as outfile:
        outfile.write("\n".join(lines) + "\n")


def _parse_floats(s, filename, line_number):
    try:
        return [float(field) for field in s.split()]
    except ValueError:
        raise ModelFileError(
            f"Could not parse numbers from {s!r}.", filename, line_number
        ) from None
