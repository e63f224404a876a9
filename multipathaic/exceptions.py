"""Exception types raised by multipathaic."""


class MultipathError(Exception):
    """Base class for all multipathaic errors."""


class InvalidInput(MultipathError, ValueError):
    """Malformed data or arguments: shapes, names, missing refit inputs."""


class FitFailure(MultipathError, RuntimeError):
    """A single candidate regression could not be fitted.

    Raised by :class:`~multipathaic.fitting.ModelFitter` and absorbed by the
    path search, which scores the candidate as ``+inf``.
    """
