"""
Exception hierarchy for spatial FDR correction.

All errors are caller-input errors raised before any output is produced.
"""


class SpatialFDRError(Exception):
    """Base class for spatialfdr errors."""


class UnsupportedPolicyError(SpatialFDRError, ValueError):
    """Weighting policy name not recognised."""


class MissingInputError(SpatialFDRError, ValueError):
    """An optional input required by the chosen policy was not supplied."""


class ShapeMismatchError(SpatialFDRError, ValueError):
    """Neighbourhoods, p-values, index vertices or distances disagree in length."""


class TypeMismatchError(SpatialFDRError, TypeError):
    """Distances supplied in neither dense-matrix nor per-neighbourhood form."""
