"""
Exception taxonomy for lassotune.

- ConfigurationError: invalid configuration or schema, raised immediately
- NumericalFailure: numerical problem that cannot be recovered from
  (e.g. rank-deficient design matrix during influence screening)
- SchemaMismatch: dataset incompatible with a learned pipeline
- ResamplingExhaustion: every penalty candidate failed on every resample
"""
from __future__ import annotations

from typing import Dict, List, Optional


class LassoTuneError(Exception):
    """Base class for all lassotune errors."""
    pass


class ConfigurationError(LassoTuneError):
    """Raised when configuration or input schema validation fails."""

    def __init__(self, errors: List[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Configuration validation failed: {self.errors}")


class NumericalFailure(LassoTuneError):
    """Raised when a numerical procedure cannot produce a trustworthy result."""
    pass


class SchemaMismatch(LassoTuneError):
    """Raised when a dataset does not match the schema a pipeline was learned on."""

    def __init__(self, message: str, columns: Optional[List[str]] = None) -> None:
        self.columns = list(columns or [])
        super().__init__(message)


class ResamplingExhaustion(LassoTuneError):
    """Raised when no penalty candidate produced a usable fit on any resample."""

    def __init__(self, failures: Dict[float, List[str]]) -> None:
        self.failures = failures
        detail = ", ".join(
            f"{penalty:g}: {len(reasons)} failed" for penalty, reasons in failures.items()
        )
        super().__init__(f"All penalty candidates failed across all resamples ({detail})")


__all__ = [
    "LassoTuneError",
    "ConfigurationError",
    "NumericalFailure",
    "SchemaMismatch",
    "ResamplingExhaustion",
]
