"""
Graph handling for connectivity-based neighbourhood weighting.

The KNN graph may be passed as a ``networkx.Graph`` or as a square adjacency
matrix (scipy sparse or NumPy), e.g. ``adata.obsp["connectivities"]``.
Neighbourhood connectivity is measured on the subgraph induced by the
neighbourhood's member vertices.
"""

import networkx as nx
import numpy as np
from scipy import sparse as sp_sparse

from spatialfdr.exceptions import ShapeMismatchError, TypeMismatchError


def as_graph(graph) -> nx.Graph:
    """
    Coerce a KNN graph to an undirected ``networkx.Graph``.

    Parameters
    ----------
    graph : networkx.Graph, scipy.sparse matrix or np.ndarray
        Graph object or square adjacency matrix. Directed graphs are viewed
        as undirected.

    Returns
    -------
    networkx.Graph
        The input graph itself (or an undirected view of it) when it is
        already a networkx graph; a new graph otherwise.
    """
    if isinstance(graph, nx.Graph):
        if graph.is_directed():
            return graph.to_undirected(as_view=True)
        return graph

    if sp_sparse.issparse(graph) or isinstance(graph, np.ndarray):
        if graph.ndim != 2 or graph.shape[0] != graph.shape[1]:
            raise ShapeMismatchError(
                f"Adjacency matrix must be square, got shape {graph.shape}"
            )
        return nx.from_scipy_sparse_array(sp_sparse.csr_array(graph))

    raise TypeMismatchError(
        f"graph must be a networkx.Graph or an adjacency matrix, got {type(graph).__name__}"
    )


def induced_subgraph(graph: nx.Graph, vertices) -> nx.Graph:
    """
    Subgraph induced by ``vertices``, without self-loops.

    Raises
    ------
    ShapeMismatchError
        If a vertex is not part of the graph.
    """
    vertices = set(vertices)
    missing = [v for v in vertices if v not in graph]
    if missing:
        raise ShapeMismatchError(
            f"Neighbourhood references {len(missing)} vertices absent from the graph "
            f"(e.g. {missing[0]!r})"
        )
    subgraph = nx.Graph(graph.subgraph(vertices))
    subgraph.remove_edges_from(list(nx.selfloop_edges(subgraph)))
    return subgraph


def vertex_connectivity(subgraph: nx.Graph) -> int:
    """Minimum number of vertices whose removal disconnects ``subgraph``."""
    if subgraph.number_of_nodes() < 2:
        return 0
    return int(nx.node_connectivity(subgraph))


def edge_connectivity(subgraph: nx.Graph) -> int:
    """Minimum number of edges whose removal disconnects ``subgraph``."""
    if subgraph.number_of_nodes() < 2:
        return 0
    return int(nx.edge_connectivity(subgraph))
