"""
Configuration dataclasses for spatial FDR correction.

``Weighting`` selects the neighbourhood weighting policy once per call;
``SpatialFDRConfig`` bundles the explicit parameters of the corrector so a
run can be saved and replayed.
"""

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from spatialfdr.exceptions import UnsupportedPolicyError


class Weighting(Enum):
    """Neighbourhood weighting policies."""

    NONE = "none"
    VERTEX = "vertex"
    EDGE = "edge"
    NEIGHBOUR_DISTANCE = "neighbour-distance"
    K_DISTANCE = "k-distance"

    @classmethod
    def parse(cls, value: Any) -> "Weighting":
        """
        Resolve a weighting selector.

        Parameters
        ----------
        value : str, Weighting or sequence
            Policy name or enum member. If a sequence of candidates is
            given, only the first one is used.

        Returns
        -------
        Weighting

        Raises
        ------
        UnsupportedPolicyError
            If the name is not one of the supported policies.

        Examples
        --------
        >>> Weighting.parse(["k-distance", "vertex"])
        <Weighting.K_DISTANCE: 'k-distance'>
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) and hasattr(value, "__len__"):
            if len(value) == 0:
                raise UnsupportedPolicyError("Weighting option not recognised: empty selection")
            value = value[0]
            if isinstance(value, cls):
                return value
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(w.value for w in cls)
            raise UnsupportedPolicyError(
                f"Weighting option not recognised: {value!r}. Use one of: {choices}"
            ) from None


@dataclass
class SpatialFDRConfig:
    """
    Spatial FDR correction configuration.

    Parameters
    ----------
    weighting : Weighting
        Neighbourhood weighting policy.
    k : int
        Number of nearest neighbours used for k-distance weighting when only
        reduced dimensions are available.
    n_jobs : int
        Workers for per-neighbourhood weight computation (joblib semantics).
    use_gpu : bool
        Use CuPy for within-neighbourhood pairwise distances if available.
    alpha : float
        Significance threshold applied to the adjusted p-values.

    Example
    -------
    >>> config = SpatialFDRConfig(weighting=Weighting.EDGE, n_jobs=4)
    >>> config.save("spatial_fdr.json")
    """

    weighting: Weighting = Weighting.VERTEX
    k: int = 21
    n_jobs: int = 1
    use_gpu: bool = False
    alpha: float = 0.1

    def __post_init__(self):
        self.weighting = Weighting.parse(self.weighting)
        if self.k < 1:
            raise ValueError("k must be a positive integer")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {**asdict(self), "weighting": self.weighting.value}

    def to_kwargs(self) -> dict:
        """Keyword arguments for ``graph_spatial_fdr``."""
        return {
            "weighting": self.weighting,
            "k": self.k,
            "n_jobs": self.n_jobs,
            "use_gpu": self.use_gpu,
        }

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "SpatialFDRConfig":
        """Load configuration from JSON file."""
        with open(path) as f:
            d = json.load(f)

        config = cls()
        for k, v in d.items():
            if k == "weighting":
                v = Weighting.parse(v)
            setattr(config, k, v)
        config.__post_init__()

        return config
