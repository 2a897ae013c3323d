"""Neighbor search utilities."""

from spatialfdr.neighbors.kdtree import KDTreeNeighborSearch, kth_nearest_distances

__all__ = ["KDTreeNeighborSearch", "kth_nearest_distances"]
