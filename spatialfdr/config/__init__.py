"""Configuration for spatial FDR correction."""

from spatialfdr.config.dataclasses import SpatialFDRConfig, Weighting

__all__ = ["SpatialFDRConfig", "Weighting"]
