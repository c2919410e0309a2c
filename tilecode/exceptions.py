"""
Exceptions raised by the tile code index.

The numeric core trusts its inputs; these cover misuse of the Python API
and of the configuration layer.
"""


class TileCodeError(Exception):
    """
    Base exception for tilecode failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class IndexNotSortedError(TileCodeError):
    """
    Range query attempted on an index with unsorted additions.

    Attributes:
        pending: Number of features added since the last sort
    """

    def __init__(self, pending: int):
        message = "Index must be sorted before lookup"
        super().__init__(message, {"pending": pending})
        self.pending = pending


class PayloadShapeError(TileCodeError):
    """
    Payload coordinate sequences differ in length.

    Attributes:
        n_lats: Number of latitudes supplied
        n_lons: Number of longitudes supplied
    """

    def __init__(self, n_lats: int, n_lons: int):
        message = "Payload latitudes and longitudes must have equal length"
        super().__init__(message, {"n_lats": n_lats, "n_lons": n_lons})
        self.n_lats = n_lats
        self.n_lons = n_lons


class ConfigError(TileCodeError):
    """
    Configuration could not be loaded.

    Attributes:
        path: Configuration file involved, if any
        reason: Explanation of the failure
    """

    def __init__(self, path: str = None, reason: str = None):
        message = "Invalid configuration"
        if reason:
            message = f"Invalid configuration: {reason}"
        super().__init__(message, {"path": path})
        self.path = path
        self.reason = reason
