"""
Input coercion for spatial FDR correction.

Neighbourhoods, p-values and index vertices are normalised to plain Python /
NumPy containers. Distances are resolved once into one of two concrete
shapes:

- ``DenseDistances``: one matrix covering all vertices (NumPy or scipy sparse)
- ``NeighbourhoodDistances``: one sub-matrix per neighbourhood, either a
  positional sequence aligned with the neighbourhood list or a mapping keyed
  by index vertex

Reduced-dimension coordinates are the third distance source and are passed
separately as an array.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import numpy as np
from scipy import sparse as sp_sparse

from spatialfdr.exceptions import MissingInputError, ShapeMismatchError, TypeMismatchError


def as_pvalues(pvalues) -> np.ndarray:
    """Coerce p-values to a 1-D float64 array (NaN marks a missing value)."""
    pvalues = np.asarray(pvalues, dtype=np.float64)
    if pvalues.ndim != 1:
        raise ShapeMismatchError(f"pvalues must be 1D, got shape {pvalues.shape}")
    return pvalues


def as_nhood_list(nhoods) -> List[List[Any]]:
    """
    Coerce neighbourhoods to a list of vertex-id lists.

    Parameters
    ----------
    nhoods : sequence or matrix
        Either a sequence of vertex collections, or a binary membership
        matrix of shape (n_vertices, n_nhoods) where column j marks the
        members of neighbourhood j (scipy sparse or boolean array).

    Returns
    -------
    list of list
        One list of vertex ids per neighbourhood, in input order.
    """
    if sp_sparse.issparse(nhoods):
        membership = sp_sparse.csc_matrix(nhoods, copy=True)
        membership.eliminate_zeros()
        return [
            membership.indices[membership.indptr[j] : membership.indptr[j + 1]].tolist()
            for j in range(membership.shape[1])
        ]

    if isinstance(nhoods, np.ndarray) and nhoods.dtype == bool:
        if nhoods.ndim != 2:
            raise ShapeMismatchError("Boolean neighbourhood matrix must be 2D (n_vertices, n_nhoods)")
        return [np.flatnonzero(nhoods[:, j]).tolist() for j in range(nhoods.shape[1])]

    return [_as_vertex_list(members) for members in nhoods]


def _as_vertex_list(members) -> List[Any]:
    if isinstance(members, np.ndarray):
        return members.reshape(-1).tolist()
    if isinstance(members, (str, bytes)) or not hasattr(members, "__iter__"):
        return [members]
    return list(members)


def as_index_list(indices, n_nhoods: int) -> Optional[List[Any]]:
    """Coerce index vertices to a list and check alignment with neighbourhoods."""
    if indices is None:
        return None
    if isinstance(indices, np.ndarray):
        indices = indices.reshape(-1).tolist()
    else:
        indices = list(indices)
    if len(indices) != n_nhoods:
        raise ShapeMismatchError(
            f"Got {len(indices)} index vertices for {n_nhoods} neighbourhoods"
        )
    return indices


def as_reduced_dimensions(reduced_dimensions) -> Optional[np.ndarray]:
    """Coerce reduced-dimension coordinates to a 2-D float64 array."""
    if reduced_dimensions is None:
        return None
    coords = np.asarray(reduced_dimensions, dtype=np.float64)
    if coords.ndim != 2:
        raise ShapeMismatchError(
            f"reduced_dimensions must be 2D (n_cells, n_dims), got shape {coords.shape}"
        )
    return coords


def vertex_positions(vertices) -> np.ndarray:
    """Vertex ids as row positions into a coordinate or distance matrix."""
    positions = np.asarray(vertices)
    if positions.size and not np.issubdtype(positions.dtype, np.integer):
        raise TypeMismatchError(
            "Vertex ids must be integer row positions to index coordinates or distances"
        )
    return positions.astype(np.intp, copy=False).reshape(-1)


def _is_matrix(x) -> bool:
    if sp_sparse.issparse(x):
        return x.ndim == 2
    return isinstance(x, np.ndarray) and x.ndim == 2 and x.dtype != object


@dataclass(frozen=True)
class DenseDistances:
    """One distance matrix over all vertices (rows indexed by vertex id)."""

    matrix: Any

    def row_max(self, vertex) -> float:
        """Largest stored distance in the row of ``vertex``."""
        row = self.matrix[int(vertex)]
        if sp_sparse.issparse(row):
            return float(row.max()) if row.nnz else 0.0
        return float(np.max(row))


@dataclass(frozen=True)
class NeighbourhoodDistances:
    """
    One distance sub-matrix per neighbourhood.

    ``matrices`` is either a sequence aligned positionally with the
    neighbourhood list, or a mapping keyed by index vertex id. Keys holding
    the string form of a vertex id are also found, for collections built by
    tools that name their entries.
    """

    matrices: Union[Sequence[Any], Mapping]

    @property
    def keyed(self) -> bool:
        return isinstance(self.matrices, Mapping)

    def __len__(self) -> int:
        return len(self.matrices)

    def lookup(self, vertex):
        """Matrix stored for index vertex ``vertex``."""
        if vertex in self.matrices:
            return self.matrices[vertex]
        if str(vertex) in self.matrices:
            return self.matrices[str(vertex)]
        raise MissingInputError(f"No distance matrix found for index vertex {vertex!r}")

    def aligned(
        self,
        indices: Optional[Sequence[Any]],
        positions: Sequence[int],
        n_nhoods: int,
    ) -> "NeighbourhoodDistances":
        """
        Resolve to a positional collection for a subset of neighbourhoods.

        Parameters
        ----------
        indices : sequence, optional
            Index vertices of the selected neighbourhoods. Required to look
            up matrices in a keyed collection whose size differs from the
            neighbourhood count.
        positions : sequence of int
            Positions of the selected neighbourhoods in the full list.
        n_nhoods : int
            Length of the full neighbourhood list.

        Returns
        -------
        NeighbourhoodDistances
            Positional collection aligned with ``positions``.
        """
        if self.keyed and indices is not None:
            return NeighbourhoodDistances([self.lookup(v) for v in indices])

        matrices = list(self.matrices.values()) if self.keyed else list(self.matrices)
        if len(matrices) != n_nhoods:
            raise ShapeMismatchError(
                f"Got {len(matrices)} neighbourhood distance matrices for {n_nhoods} neighbourhoods"
            )
        return NeighbourhoodDistances([matrices[i] for i in positions])


DistanceSource = Union[DenseDistances, NeighbourhoodDistances]


def as_distance_source(distances) -> Optional[DistanceSource]:
    """
    Resolve raw distances into a ``DenseDistances`` or ``NeighbourhoodDistances``.

    Parameters
    ----------
    distances : matrix, sequence of matrices, mapping of matrices or None
        A single 2-D matrix (NumPy, scipy sparse or DataFrame) is treated as
        a dense cell-to-cell distance matrix. A sequence or mapping whose
        values are all 2-D matrices is treated as per-neighbourhood
        distances.

    Returns
    -------
    DenseDistances, NeighbourhoodDistances or None

    Raises
    ------
    TypeMismatchError
        If ``distances`` has neither form.
    """
    if distances is None or isinstance(distances, (DenseDistances, NeighbourhoodDistances)):
        return distances

    if _is_matrix(distances):
        return DenseDistances(distances)

    if hasattr(distances, "to_numpy") and getattr(distances, "ndim", None) == 2:
        return DenseDistances(distances.to_numpy(dtype=np.float64))

    if isinstance(distances, Mapping):
        values = {key: _as_matrix(m) for key, m in distances.items()}
        if all(m is not None for m in values.values()):
            return NeighbourhoodDistances(values)

    elif isinstance(distances, (list, tuple)) or (
        isinstance(distances, np.ndarray) and distances.dtype == object and distances.ndim == 1
    ):
        matrices = [_as_matrix(m) for m in distances]
        if all(m is not None for m in matrices):
            return NeighbourhoodDistances(matrices)
        try:
            dense = np.asarray(distances, dtype=np.float64)
        except (TypeError, ValueError):
            dense = None
        if dense is not None and dense.ndim == 2:
            return DenseDistances(dense)

    raise TypeMismatchError(
        "Neighbourhood distances must be either a matrix or a list of matrices"
    )


def _as_matrix(x):
    if _is_matrix(x):
        return x
    if hasattr(x, "to_numpy") and getattr(x, "ndim", None) == 2:
        return x.to_numpy(dtype=np.float64)
    return None
