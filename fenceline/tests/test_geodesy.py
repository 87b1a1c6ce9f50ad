"""
Tests for in-process geodetic membership.
"""
import pytest

from fenceline.app.core.geodesy import geodesic_distance, spherical_covers, within_radius

CENTER = [116.397, 39.909]
SQUARE = [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]

# Wide band whose edges are long great-circle arcs bulging towards the pole
WIDE_BAND = [[-60, 40], [60, 40], [60, 60], [-60, 60]]


def test_distance_to_self_is_zero():
    assert geodesic_distance(CENTER, CENTER) == pytest.approx(0.0, abs=1e-6)


def test_one_degree_of_latitude():
    # ~111 km at mid latitudes on WGS-84
    assert geodesic_distance([0, 45], [0, 46]) == pytest.approx(111_141, rel=1e-3)


def test_center_is_within_any_positive_radius():
    assert within_radius(CENTER, CENTER, 1)


def test_radius_boundary_is_inclusive():
    point = [116.407, 39.909]
    distance = geodesic_distance(point, CENTER)
    assert within_radius(point, CENTER, distance)
    assert not within_radius(point, CENTER, distance - 0.01)


def test_growing_radius_never_excludes():
    point = [116.45, 39.95]
    hits = [within_radius(point, CENTER, r) for r in (100, 1000, 5000, 10000, 50000)]
    assert hits == sorted(hits)
    assert hits[-1] is True


def test_square_interior():
    assert spherical_covers(SQUARE, [0.5, 0.5])


def test_square_exterior():
    assert not spherical_covers(SQUARE, [1.5, 0.5])
    assert not spherical_covers(SQUARE, [-0.001, 0.5])


def test_vertex_and_edge_are_covered():
    assert spherical_covers(SQUARE, [0, 0])
    assert spherical_covers(SQUARE, [0, 0.5])


def test_open_ring_is_accepted():
    assert spherical_covers(SQUARE[:-1], [0.5, 0.5])


def test_edges_follow_great_circles():
    # Planar lat/lng containment would answer the other way round for both
    assert spherical_covers(WIDE_BAND, [0, 65])
    assert not spherical_covers(WIDE_BAND, [0, 50])


def test_far_away_ring_does_not_cover():
    assert not spherical_covers(SQUARE, [180, 0])


def test_degenerate_ring():
    assert not spherical_covers([[0, 0], [1, 1]], [0.5, 0.5])
