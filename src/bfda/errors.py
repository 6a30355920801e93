from __future__ import annotations


class BFDAError(Exception):
    """Base class for all errors raised by bfda."""


class ConfigurationError(BFDAError, ValueError):
    """Invalid simulation/analysis configuration, detected before any work starts."""


class NumericError(BFDAError, ArithmeticError):
    """A Bayes factor or test statistic could not be computed for one replication step."""


class AnalysisRangeError(BFDAError, ValueError):
    """Analysis requested outside of the simulated sample-size range."""


class AmbiguousHypothesisError(BFDAError, ValueError):
    """The simulated population is not tagged as H0 or H1."""
