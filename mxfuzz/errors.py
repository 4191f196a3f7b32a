"""Fatal error kinds raised by the fuzzer."""

from __future__ import annotations


class FuzzError(Exception):
    """Base class for fuzzer failures."""


class ConfigurationError(FuzzError):
    """Raised before the search starts when inputs or run parameters are invalid."""


class OracleUnavailable(FuzzError):
    """Raised when the oracle cannot start, accept a payload, or report results.

    The run is aborted immediately; a failed evaluation is never scored.
    """
