"""
Error and warning types raised by the scoring core.
"""


class ScreeningError(Exception):
    """Base class for all errors raised while scoring a screen."""


class InvalidInputError(ScreeningError, ValueError):
    """Malformed or missing statistic, degrees of freedom or parameter."""


class MissingColumnError(ScreeningError, KeyError):
    """A required column is absent from an input table."""

    def __str__(self):
        # KeyError quotes its message otherwise
        return str(self.args[0]) if self.args else ""


class EmptyResultError(ScreeningError):
    """Not enough targets survived filtering."""


class EmptyOverlapError(ScreeningError):
    """None of the ground-truth target IDs are present in the results."""


class UnsupportedStatisticError(ScreeningError, ValueError):
    """Unknown ranking statistic selector."""


class AggregationCancelledError(ScreeningError):
    """The aggregation was cancelled or ran past its deadline."""


class ScreeningWarning(UserWarning):
    """Recoverable condition, processing continued on a reduced set."""
