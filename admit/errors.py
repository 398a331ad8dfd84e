class AdmitError(Exception):
    """Base class for failures raised by the extraction and prediction core."""


class SourceUnreadable(AdmitError):
    """Raw bytes could not be decoded or text could not be pulled from them."""


class InsufficientData(AdmitError):
    """Too few rows, or nothing survived mapping/scanning."""


class RowRejected(AdmitError):
    """A single row failed shape, type or sanity checks."""


class PersistenceFailure(AdmitError):
    """The record store refused a write or a query."""
