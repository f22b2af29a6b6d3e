import math

import numpy as np
import pytest

import echobeam.geometry as g
from echobeam.exceptions import EchobeamWarning, InvalidDimension, InvalidShape

DATASET_1 = dict(
    # set1:
    points1=np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [1.0, 0.0, 2.0]]),
    # set 2:
    points2=np.array([[0.0, 0.0, 0.0], [1.0, -1.0, 0.0], [2.0, -2.0, 1.0], [0.5, 0.5, 0.5]]),
)


def test_grid():
    xmin = -10e-3
    xmax = 10e-3
    dx = 1e-3

    ymin = 3e-3
    ymax = 3e-3
    dy = 1e-3

    zmin = 0.0
    zmax = 10e-3
    dz = 1e-3

    grid = g.Grid(xmin, xmax, ymin, ymax, zmin, zmax, (dx, dy, dz))
    assert grid.shape == (grid.numx, grid.numy, grid.numz)
    assert not grid.is_polar

    assert len(grid.xvect) == 21
    assert grid.xvect[0] == xmin
    assert grid.xvect[-1] == xmax
    assert np.isclose(grid.dx, dx)
    assert grid.x.shape == grid.shape

    assert len(grid.yvect) == 1
    assert grid.yvect[0] == ymin
    assert grid.dy is None
    assert grid.y.shape == grid.shape

    assert len(grid.zvect) == 11
    assert np.isclose(grid.dz, dz)
    assert grid.z.shape == grid.shape

    assert grid.numpoints == 21 * 1 * 11
    assert len(grid.steps) == 2
    np.testing.assert_array_equal(grid.lateral, grid.xvect)

    points = grid.to_1d_points()
    assert points.shape == (grid.numpoints, 3)
    # x is the slowest axis, z the fastest
    np.testing.assert_allclose(points[1], [xmin, ymin, zmin + dz])
    repr(grid)


def test_grid_single_pixel_size():
    grid = g.Grid(-1e-3, 1e-3, 0.0, 0.0, 1e-3, 5e-3, 0.5e-3)
    assert grid.shape == (5, 1, 9)
    np.testing.assert_allclose(grid.steps, [0.5e-3, 0.5e-3])


def test_grid_reversed_bounds_warns():
    with pytest.warns(EchobeamWarning):
        g.Grid(1e-3, -1e-3, 0.0, 0.0, 0.0, 1e-3, 0.5e-3)


def test_grid_from_vectors():
    xvect = np.linspace(-2e-3, 2e-3, 9)
    zvect = np.linspace(1e-3, 3e-3, 5)
    grid = g.Grid.from_vectors(xvect, 0.0, zvect)
    assert grid.shape == (9, 1, 5)
    np.testing.assert_allclose(grid.xvect, xvect)
    np.testing.assert_allclose(grid.dz, 0.5e-3)
    np.testing.assert_allclose(grid.coords[2, 0, 3], [xvect[2], 0.0, zvect[3]])

    with pytest.raises(ValueError):
        g.Grid.from_vectors([0.0, 1.0, 3.0], 0.0, zvect)


def test_polar_grid():
    r = np.linspace(10e-3, 20e-3, 11)
    azimuth = np.radians([-30.0, 0.0, 30.0])
    origin = (1e-3, 0.0, -5e-3)
    grid = g.PolarGrid(r, azimuth, origin)
    assert grid.is_polar
    assert grid.shape == (3, 1, 11)
    assert grid.numpoints == 33
    np.testing.assert_allclose(grid.lateral, azimuth)

    # the central line points along z
    np.testing.assert_allclose(grid.x[1, 0], origin[0])
    np.testing.assert_allclose(grid.z[1, 0], origin[2] + r)
    # every point is at its radius from the origin
    dist = np.linalg.norm(grid.coords - np.asarray(origin), axis=-1)
    np.testing.assert_allclose(dist, np.broadcast_to(r, grid.shape))
    # positive azimuths towards +x
    assert np.all(grid.x[2] > origin[0])
    assert grid.to_1d_points().shape == (33, 3)

    with pytest.raises(InvalidShape):
        g.PolarGrid(r, azimuth, origin=(0.0, 0.0))


EUCLIDEAN_DISTANCE_1 = None


@pytest.fixture(
    scope="module",
    params=[
        dict(block_size=None, numthreads=None),
        dict(block_size=1, numthreads=1),
        dict(block_size=1, numthreads=4),
        dict(block_size=10, numthreads=4),
    ],
)
def distance(request):
    """
    Compute the Euclidean distance using our package. Check that multithreading has no
    effect on the result.
    """
    kwargs = dict(request.param)
    kwargs.update(DATASET_1)

    return g.distance_pairwise(**kwargs)


def mock_euclidean_distance(points1, points2):
    """
    naive implementation of computation of euclidean distance
    Compute once and cache result
    """
    global EUCLIDEAN_DISTANCE_1
    if EUCLIDEAN_DISTANCE_1 is None:
        distance = np.full((len(points1), len(points2)), 0, dtype=np.float64)
        for i in range(len(points1)):
            for j in range(len(points2)):
                distance[i, j] = math.sqrt(
                    (points1[i, 0] - points2[j, 0]) ** 2
                    + (points1[i, 1] - points2[j, 1]) ** 2
                    + (points1[i, 2] - points2[j, 2]) ** 2
                )
        EUCLIDEAN_DISTANCE_1 = distance
    return EUCLIDEAN_DISTANCE_1


def test_euclidean_distance(distance):
    mock_distance = mock_euclidean_distance(**DATASET_1)

    assert np.allclose(distance, mock_distance)


def test_euclidean_distance_advanced():
    mock_distance = mock_euclidean_distance(**DATASET_1)

    distance = g.distance_pairwise(**DATASET_1, dtype=np.float32)
    assert distance.dtype == np.float32
    assert np.allclose(distance, mock_distance)

    distance = np.full((3, 4), 0.0, dtype=np.float64)
    g.distance_pairwise(**DATASET_1, out=distance)  # write inplace
    assert np.allclose(distance, mock_distance)

    with pytest.raises(InvalidShape):
        g.distance_pairwise(**DATASET_1, out=np.zeros((4, 3)))
    with pytest.raises(InvalidDimension):
        g.distance_pairwise(np.zeros(3), DATASET_1["points2"])
    with pytest.raises(InvalidShape):
        g.distance_pairwise(np.zeros((3, 2)), DATASET_1["points2"])


def test_signed_distance():
    points = np.array([[0.0, 0.0, 2.0], [0.0, 0.0, -1.0], [3.0, 0.0, 4.0]])
    sources = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 5.0]])
    d = g.signed_distance(points, sources)
    np.testing.assert_allclose(
        d,
        [
            [2.0, -3.0],
            [-1.0, -6.0],
            [5.0, -np.sqrt(10.0)],
        ],
    )
    # the side is taken along the given normal
    d = g.signed_distance(points, sources, normal=(0.0, 0.0, -1.0))
    np.testing.assert_allclose(d[0], [-2.0, 3.0])
