"""Error kinds raised while building and running prediction requests.

Every error aborts the run; nothing is retried. The CLI logs the message
and exits non-zero.
"""


class PredictionError(Exception):
    """Base class for all failures surfaced to the command line."""


class ValidationError(PredictionError):
    """A required input is missing, empty or out of range.

    Always raised before any file or network access.
    """


class InputReadError(PredictionError):
    """The parameter input file could not be read."""


class DecodeError(PredictionError):
    """The parameter input file is not a JSON array of user events."""


class RemoteCallError(PredictionError):
    """A Retail API call failed. The underlying error is chained as ``__cause__``."""
