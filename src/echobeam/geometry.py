"""
.. currentmodule: echobeam.geometry

Pixel grids and distance computations.

Points
======

A set of points is stored as an array of shape ``(..., 3)``: the last axis holds
the Cartesian coordinates ``(x, y, z)``. ``z`` is the depth, positive in front of
the array.

Grids
=====

Both :class:`Grid` (Cartesian) and :class:`PolarGrid` have a shape
``(numlateral, numy, numrange)``: the lateral axis (x or azimuth) is the first
one and the range axis (z or radius) is the last one.

"""

import concurrent.futures
import math
from warnings import warn

import numba
import numpy as np

from . import settings as s
from .exceptions import EchobeamWarning, InvalidDimension, InvalidShape
from .helpers import chunk_array, get_shape_safely

__all__ = ["Grid", "PolarGrid", "distance_pairwise", "signed_distance"]


def _linspace(vmin, vmax, step, name):
    if vmin == vmax:
        return np.array([vmin], dtype=s.FLOAT)
    if vmin > vmax:
        warn("{0}min > {0}max in grid".format(name), EchobeamWarning)
    return np.linspace(
        vmin, vmax, round((abs(vmax - vmin) + step) / step), dtype=s.FLOAT
    )


class Grid:
    """
    Regularly spaced 3d grid

    Attributes
    ----------
    xvect: ndarray
        Unique points along first axis
    yvect: ndarray
        Unique points along second axis
    zvect: ndarray
        Unique points along third axis
    coords: ndarray
        Coordinates of all points. Shape: ``(numx, numy, numz, 3)``
    dx, dy, dz: float or None
        Exact distance between points. None if only one point along the axis

    Parameters
    ----------
    xmin : float
    xmax : float
    ymin : float
    ymax : float
    zmin : float
    zmax  : float
    pixel_size: float
        *Approximative* distance between points to use. Either one or three floats.

    """

    __slots__ = ("xvect", "yvect", "zvect", "coords")

    is_polar = False

    def __init__(self, xmin, xmax, ymin, ymax, zmin, zmax, pixel_size):
        try:
            dx, dy, dz = pixel_size
        except TypeError:
            dx = dy = dz = pixel_size

        self._set_vectors(
            _linspace(xmin, xmax, dx, "x"),
            _linspace(ymin, ymax, dy, "y"),
            _linspace(zmin, zmax, dz, "z"),
        )

    def _set_vectors(self, xvect, yvect, zvect):
        self.xvect = np.asarray(xvect, dtype=s.FLOAT).reshape(-1)
        self.yvect = np.asarray(yvect, dtype=s.FLOAT).reshape(-1)
        self.zvect = np.asarray(zvect, dtype=s.FLOAT).reshape(-1)
        self.coords = np.stack(
            np.meshgrid(self.xvect, self.yvect, self.zvect, indexing="ij"), axis=-1
        )

    @classmethod
    def from_vectors(cls, xvect, yvect, zvect):
        """
        Create a grid from its unique coordinates along each axis.

        The vectors must be regularly spaced.
        """
        obj = cls.__new__(cls)
        obj._set_vectors(xvect, yvect, zvect)
        for name, vect in zip("xyz", obj.axes):
            if len(vect) > 2 and not np.allclose(np.diff(vect), vect[1] - vect[0]):
                raise ValueError("'{}vect' is not regularly spaced".format(name))
        return obj

    def __repr__(self):
        return "<{}: {} points, shape {}>".format(
            self.__class__.__name__, self.numpoints, self.shape
        )

    @property
    def axes(self):
        return (self.xvect, self.yvect, self.zvect)

    @property
    def shape(self):
        return (len(self.xvect), len(self.yvect), len(self.zvect))

    @property
    def numpoints(self):
        return math.prod(self.shape)

    @property
    def numx(self):
        return len(self.xvect)

    @property
    def numy(self):
        return len(self.yvect)

    @property
    def numz(self):
        return len(self.zvect)

    @property
    def x(self):
        return self.coords[..., 0]

    @property
    def y(self):
        return self.coords[..., 1]

    @property
    def z(self):
        return self.coords[..., 2]

    @property
    def dx(self):
        try:
            return self.xvect[1] - self.xvect[0]
        except IndexError:
            return None

    @property
    def dy(self):
        try:
            return self.yvect[1] - self.yvect[0]
        except IndexError:
            return None

    @property
    def dz(self):
        try:
            return self.zvect[1] - self.zvect[0]
        except IndexError:
            return None

    @property
    def steps(self):
        """Grid steps along the axes with more than one point."""
        return [d for d in (self.dx, self.dy, self.dz) if d is not None]

    @property
    def lateral(self):
        """Lateral coordinate of the first axis."""
        return self.xvect

    def to_1d_points(self):
        """
        Returns the grid points as an array of shape (numpoints, 3).
        """
        return self.coords.reshape(-1, 3)


class PolarGrid:
    """
    Grid in polar coordinates in the plane (x, z), centred on ``origin``.

    Azimuths are measured from the z-axis towards the x-axis.

    Parameters
    ----------
    r : ndarray
        Radii. Shape: (numr, )
    azimuth : ndarray
        Angles in radians. Shape: (numa, )
    origin : ndarray
        Shape: (3, )

    Attributes
    ----------
    coords: ndarray
        Shape: (numa, 1, numr, 3)

    """

    __slots__ = ("r", "azimuth", "origin", "coords")

    is_polar = True

    def __init__(self, r, azimuth, origin=(0.0, 0.0, 0.0)):
        self.r = np.asarray(r, dtype=s.FLOAT).reshape(-1)
        self.azimuth = np.asarray(azimuth, dtype=s.FLOAT).reshape(-1)
        self.origin = np.asarray(origin, dtype=s.FLOAT)
        if self.origin.shape != (3,):
            raise InvalidShape.message_auto("origin", (3,), self.origin.shape)

        a = self.azimuth[:, np.newaxis, np.newaxis]
        r = self.r[np.newaxis, np.newaxis, :]
        x = self.origin[0] + r * np.sin(a)
        z = self.origin[2] + r * np.cos(a)
        y = np.full_like(x, self.origin[1])
        self.coords = np.stack(np.broadcast_arrays(x, y, z), axis=-1)

    def __repr__(self):
        return "<{}: {} points, shape {}>".format(
            self.__class__.__name__, self.numpoints, self.shape
        )

    @property
    def shape(self):
        return (len(self.azimuth), 1, len(self.r))

    @property
    def numpoints(self):
        return math.prod(self.shape)

    @property
    def x(self):
        return self.coords[..., 0]

    @property
    def y(self):
        return self.coords[..., 1]

    @property
    def z(self):
        return self.coords[..., 2]

    @property
    def lateral(self):
        """Azimuth of the first axis."""
        return self.azimuth

    def to_1d_points(self):
        return self.coords.reshape(-1, 3)


def distance_pairwise(
    points1, points2, out=None, dtype=None, block_size=None, numthreads=None
):
    """
    Compute the Euclidean distances between two sets of points.

       distance[i, j] := sqrt( delta_x**2 + delta_y**2 + delta_z**2 )

    The computation is parallelized with multithreading. Both sets of points are chunked.

    Parameters
    ----------
    points1 : ndarray
        Coordinates of the first set of points. Shape: (num1, 3)
    points2 : ndarray
        Coordinates of the second set of points. Shape: (num2, 3)
    out : ndarray, optional
        Preallocated array where to write the result.
        Default: allocate on the fly.
    dtype : numpy.dtype, optional
        Data type for `out`, if not given. Default: infer from points1, points2.
    block_size : int, optional
        Number of points to treat in a row.
        Default: echobeam.settings.BLOCK_SIZE_EUC_DISTANCE
    numthreads int, optional
        Number of threads to start.
        Default: echobeam.settings.NUMTHREADS

    Returns
    -------
    distance : ndarray [num1 x num2]
        Euclidean distances between the points of the two input sets.
    """
    points1 = np.asarray(points1)
    points2 = np.asarray(points2)
    if points1.ndim != 2 or points2.ndim != 2:
        raise InvalidDimension("The points must be given as 2d arrays (numpoints, 3).")
    if points1.shape[1] != 3 or points2.shape[1] != 3:
        raise InvalidShape("The points must have three coordinates.")
    num1 = points1.shape[0]
    num2 = points2.shape[0]

    if out is None:
        if dtype is None:
            dtype = np.result_type(points1.dtype, points2.dtype, np.float32)
        distance = np.full((num1, num2), 0, dtype=dtype)
    else:
        get_shape_safely(out, "out", (num1, num2))
        distance = out

    if block_size is None:
        block_size = s.BLOCK_SIZE_EUC_DISTANCE
    if numthreads is None:
        numthreads = s.NUMTHREADS
    chunk_size = math.ceil(block_size / 6)

    x1, y1, z1 = (np.ascontiguousarray(points1[:, i]) for i in range(3))
    x2, y2, z2 = (np.ascontiguousarray(points2[:, i]) for i in range(3))

    futures = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=numthreads) as executor:
        for chunk1 in chunk_array((num1,), chunk_size):
            for chunk2 in chunk_array((num2,), chunk_size):
                futures.append(
                    executor.submit(
                        _distance_pairwise,
                        x1[chunk1],
                        y1[chunk1],
                        z1[chunk1],
                        x2[chunk2],
                        y2[chunk2],
                        z2[chunk2],
                        distance[chunk1[0], chunk2[0]],
                    )
                )
    # Raise exceptions that happened, if any:
    for future in futures:
        future.result()
    return distance


@numba.jit(nopython=True, nogil=True, cache=True)
def _distance_pairwise(x1, y1, z1, x2, y2, z2, distance):
    """
    Cf. distance_pairwise.

    ``distance`` is the result. The array must be preallocated before.

    """
    num1, num2 = distance.shape

    for i in range(num1):
        for j in range(num2):
            dx = x1[i] - x2[j]
            dy = y1[i] - y2[j]
            dz = z1[i] - z2[j]
            distance[i, j] = math.sqrt(dx * dx + dy * dy + dz * dz)
    return


def signed_distance(points, sources, normal=(0.0, 0.0, 1.0), numthreads=None):
    """
    Distance from each source to each point, negative for the points behind the
    source with respect to ``normal``.

    Parameters
    ----------
    points : ndarray
        Shape: (num1, 3)
    sources : ndarray
        Shape: (num2, 3)
    normal : ndarray
        Shape: (3, )

    Returns
    -------
    ndarray
        Shape: (num1, num2)
    """
    points = np.asarray(points)
    sources = np.asarray(sources)
    distance = distance_pairwise(points, sources, numthreads=numthreads)
    side = points @ np.asarray(normal, dtype=s.FLOAT)
    side = side[:, np.newaxis] - (sources @ np.asarray(normal, dtype=s.FLOAT))
    return distance * np.sign(side)
