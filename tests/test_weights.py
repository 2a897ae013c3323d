"""Tests for neighbourhood weighting."""

import networkx as nx
import numpy as np
import pytest
from scipy import sparse

from spatialfdr.core.distances import max_distance, mean_pairwise_distance, mean_row_means
from spatialfdr.core.graph import as_graph, edge_connectivity, induced_subgraph, vertex_connectivity
from spatialfdr.core.weights import compute_nhood_connectivity, inverse_weights
from spatialfdr.exceptions import ShapeMismatchError, TypeMismatchError, UnsupportedPolicyError


class TestConnectivity:
    """Tests for compute_nhood_connectivity graph policies."""

    def test_vertex(self, toy_graph, toy_nhoods):
        """Test vertex connectivity of each induced subgraph."""
        scores = compute_nhood_connectivity(toy_nhoods, "vertex", graph=toy_graph)

        assert np.array_equal(scores, [3, 1, 0, 1])

    def test_edge(self, toy_graph, toy_nhoods):
        """Test edge connectivity of each induced subgraph."""
        scores = compute_nhood_connectivity(toy_nhoods, "edge", graph=toy_graph)

        assert np.array_equal(scores, [3, 1, 0, 2])

    def test_membership_matrix(self, toy_graph, toy_nhoods):
        """Test a sparse membership matrix is read column by column."""
        rows = [v for nh in toy_nhoods for v in nh]
        cols = [j for j, nh in enumerate(toy_nhoods) for _ in nh]
        membership = sparse.csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(14, 4))

        scores = compute_nhood_connectivity(membership, "vertex", graph=toy_graph)
        assert np.array_equal(scores, [3, 1, 0, 1])

    def test_none_has_no_score(self, toy_graph, toy_nhoods):
        """Test 'none' is refused by the connectivity dispatcher."""
        with pytest.raises(UnsupportedPolicyError):
            compute_nhood_connectivity(toy_nhoods, "none", graph=toy_graph)


class TestInverseWeights:
    """Tests for inverse_weights."""

    def test_inverse(self):
        """Test weights are reciprocal scores."""
        assert np.allclose(inverse_weights([1.0, 2.0, 4.0]), [1.0, 0.5, 0.25])

    def test_zero_score(self):
        """Test a zero score gives weight exactly 0."""
        w = inverse_weights([0, 3])

        assert w[0] == 0.0
        assert np.isclose(w[1], 1 / 3)

    def test_undefined_score(self):
        """Test NaN scores give weight 0."""
        w = inverse_weights([np.nan, 2.0])

        assert w[0] == 0.0
        assert np.all(np.isfinite(w))


class TestGraph:
    """Tests for graph helpers."""

    def test_induced_subgraph(self, toy_graph):
        """Test only edges between members are kept."""
        sub = induced_subgraph(toy_graph, [3, 4, 5])

        assert set(sub.edges()) == {(3, 4), (4, 5)}

    def test_self_loops_ignored(self):
        """Test self-loops do not change connectivity."""
        G = nx.path_graph(3)
        G.add_edge(1, 1)
        sub = induced_subgraph(G, [0, 1, 2])

        assert vertex_connectivity(sub) == 1
        assert edge_connectivity(sub) == 1

    def test_original_not_mutated(self):
        """Test inducing a subgraph leaves the graph untouched."""
        G = nx.path_graph(3)
        G.add_edge(1, 1)
        induced_subgraph(G, [0, 1, 2])

        assert G.has_edge(1, 1)

    def test_absent_vertex(self, toy_graph):
        """Test neighbourhoods must reference graph vertices."""
        with pytest.raises(ShapeMismatchError):
            induced_subgraph(toy_graph, [0, 99])

    def test_trivial_graphs(self):
        """Test graphs with fewer than two vertices have connectivity 0."""
        G = nx.Graph()
        G.add_node(0)

        assert vertex_connectivity(G) == 0
        assert edge_connectivity(G) == 0

    def test_complete_graph(self):
        """Test K_n has connectivity n - 1."""
        G = nx.complete_graph(5)

        assert vertex_connectivity(G) == 4
        assert edge_connectivity(G) == 4

    def test_adjacency_matrix(self):
        """Test a dense adjacency matrix is converted."""
        A = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]])
        G = as_graph(A)

        assert G.number_of_nodes() == 3
        assert G.number_of_edges() == 2

    def test_directed_graph(self):
        """Test directed graphs are viewed as undirected."""
        G = as_graph(nx.DiGraph([(0, 1), (1, 2)]))

        assert not G.is_directed()
        assert G.has_edge(1, 0)

    def test_non_square(self):
        """Test adjacency matrices must be square."""
        with pytest.raises(ShapeMismatchError):
            as_graph(np.zeros((3, 2)))

    def test_wrong_type(self):
        """Test unsupported graph types are rejected."""
        with pytest.raises(TypeMismatchError):
            as_graph("graph")


class TestDistances:
    """Tests for distance summaries."""

    def test_mean_pairwise_distance(self):
        """Test each pair is counted once."""
        points = np.array([[0.0, 0.0], [3.0, 0.0], [0.0, 4.0]])

        # Pairs: 3, 4, 5
        assert np.isclose(mean_pairwise_distance(points), 4.0)

    def test_single_point(self):
        """Test one point has no pairs."""
        assert mean_pairwise_distance(np.zeros((1, 3))) == 0.0

    def test_mean_row_means(self):
        """Test mean of row means."""
        m = np.array([[0.0, 2.0], [4.0, 6.0]])

        assert np.isclose(mean_row_means(m), 3.0)

    def test_mean_row_means_sparse(self):
        """Test implicit zeros of sparse matrices are counted."""
        m = sparse.csr_matrix(np.array([[0.0, 2.0], [4.0, 0.0]]))

        assert np.isclose(mean_row_means(m), 1.5)

    def test_max_distance(self):
        """Test the largest entry is returned for dense and sparse input."""
        m = np.array([[0.0, 2.5], [1.0, 0.0]])

        assert max_distance(m) == 2.5
        assert max_distance(sparse.csr_matrix(m)) == 2.5
        assert max_distance(sparse.csr_matrix((2, 2))) == 0.0
