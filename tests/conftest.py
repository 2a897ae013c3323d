"""Shared fixtures: a small graph with known neighbourhood connectivities."""

import networkx as nx
import numpy as np
import pytest


@pytest.fixture
def toy_graph():
    """
    Graph with four neighbourhoods of known connectivity.

    - [0, 1, 2, 3]: complete graph K4 (vertex 3, edge 3)
    - [4, 5, 6]: path (vertex 1, edge 1)
    - [7, 8]: two isolated vertices (vertex 0, edge 0)
    - [9..13]: two triangles sharing vertex 11 (vertex 1, edge 2)
    """
    G = nx.Graph()
    G.add_nodes_from(range(14))
    G.add_edges_from(nx.complete_graph(4).edges())
    G.add_edges_from([(4, 5), (5, 6)])
    G.add_edges_from([(9, 10), (10, 11), (9, 11), (11, 12), (12, 13), (11, 13)])
    # Edges leaving a neighbourhood must not affect its induced subgraph
    G.add_edges_from([(3, 4), (6, 7), (8, 9)])
    return G


@pytest.fixture
def toy_nhoods():
    return [[0, 1, 2, 3], [4, 5, 6], [7, 8], [9, 10, 11, 12, 13]]


@pytest.fixture
def toy_pvalues():
    return np.array([0.01, 0.2, 0.04, 0.03])
