"""
Apodization masks.

Each function returns an array broadcastable to ``(*grid.shape, numrx, numtx)``,
to be passed as ``apod`` to the beamformers. The lateral axis of the grid is its
first axis: ``x`` for a :class:`echobeam.geometry.Grid`, the azimuth for a
:class:`echobeam.geometry.PolarGrid`.

"""

import logging

import numpy as np

from ..core import SequenceKind
from ..exceptions import PreconditionError

__all__ = [
    "scanline",
    "multiline",
    "translating_aperture",
    "aperture_growth",
    "acceptance_angle",
]

logger = logging.getLogger(__name__)


def _pixel_lateral(grid):
    """Lateral position (or azimuth) of each pixel. Shape: (numx, 1, 1, 1, 1)"""
    return np.reshape(grid.lateral, (-1, 1, 1, 1, 1))


def _transmit_lateral(grid, sequence):
    """Lateral position (or azimuth) of each transmit. Shape: (numtx, )"""
    if sequence.kind is SequenceKind.fsa:
        raise PreconditionError("A sequence of focused transmits is required")
    if sequence.kind is not SequenceKind.vs:
        logger.warning(
            "Expected a virtual source sequence, got '{}'".format(sequence.kind.name)
        )
    if not grid.is_polar:
        return sequence.focus[:, 0]
    if sequence.kind is SequenceKind.pw:
        return sequence.angles
    rel = sequence.focus - grid.origin
    return np.arctan2(rel[:, 0], rel[:, 2])


def _along_tx(vect):
    return np.reshape(vect, (1, 1, 1, 1, -1))


def _along_rx(vect):
    return np.reshape(vect, (1, 1, 1, -1, 1))


def scanline(grid, sequence, tol=None):
    """
    Accept the pixels on the scan line of each transmit.

    Parameters
    ----------
    grid : Grid or PolarGrid
    sequence : Sequence
        Focused transmits.
    tol : float or None
        Lateral tolerance (m, or rad for a polar grid). Default: the smallest
        spacing between two consecutive transmits.

    Returns
    -------
    ndarray
        Boolean. Shape: (numx, 1, 1, 1, numtx)
    """
    xv = _transmit_lateral(grid, sequence)
    if tol is None:
        tol = np.min(np.abs(np.diff(xv))) if len(xv) > 1 else np.inf
    return np.abs(_pixel_lateral(grid) - _along_tx(xv)) < tol


def multiline(grid, sequence):
    """
    Linear interpolation between the two transmits around each pixel.

    A pixel outside the span of the transmits is weighted by 1 on the nearest
    transmit.

    Returns
    -------
    ndarray
        Shape: (numx, 1, 1, 1, numtx). The weights of each pixel sum to 1.
    """
    xv = _transmit_lateral(grid, sequence)
    xi = np.asarray(grid.lateral, dtype=float)
    order = np.argsort(xv, kind="stable")
    xs = xv[order]
    numtx = len(xv)

    left = np.searchsorted(xs, xi, side="right") - 1
    right = np.searchsorted(xs, xi, side="left")
    left = np.clip(left, 0, numtx - 1)
    right = np.clip(right, 0, numtx - 1)
    span = xs[right] - xs[left]
    with np.errstate(invalid="ignore", divide="ignore"):
        a_left = np.where(span > 0, (xs[right] - xi) / span, 1.0)
    a_left = np.clip(a_left, 0.0, 1.0)

    apod = np.zeros((len(xi), numtx))
    rows = np.arange(len(xi))
    np.add.at(apod, (rows, order[left]), a_left)
    np.add.at(apod, (rows, order[right]), 1.0 - a_left)
    return apod.reshape(len(xi), 1, 1, 1, numtx)


def translating_aperture(grid, sequence, rx, tol=None):
    """
    Accept the receive elements close to the scan line of each transmit.

    Parameters
    ----------
    grid : Grid or PolarGrid
    sequence : Sequence
    rx : Aperture
    tol : float, pair of floats or None
        Tolerance between the pixel and the transmit, and between the pixel and
        the receive element. A single value is used for both. Default: a quarter
        of the width (or of the angular span) of the receive aperture.

    Returns
    -------
    ndarray
        Boolean. Shape: (numx, 1, 1, numrx, numtx)
    """
    xv = _transmit_lateral(grid, sequence)
    xn = rx.angles if grid.is_polar else rx.x
    if tol is None:
        tol = np.ptp(xn) / 4
    tol = np.atleast_1d(tol)
    xi = _pixel_lateral(grid)
    return (np.abs(xi - _along_tx(xv)) <= tol[0]) & (
        np.abs(xi - _along_rx(xn)) <= tol[-1]
    )


def aperture_growth(grid, rx, fnumber=1.5, dmax=np.inf):
    """
    Receive aperture growing with depth, at a constant f-number.

    An element is accepted when ``z > fnumber * 2 |x_element - x_pixel|`` and
    ``2 |x_element - x_pixel| < dmax``.

    Returns
    -------
    ndarray
        Boolean. Shape: (*grid.shape, numrx, 1)
    """
    width = 2 * np.abs(rx.x[:, np.newaxis] - grid.x[..., np.newaxis, np.newaxis])
    depth = grid.z[..., np.newaxis, np.newaxis]
    return (depth > fnumber * width) & (width < dmax)


def acceptance_angle(grid, rx, theta=np.radians(45)):
    """
    Accept the elements which see the pixel within ``theta`` of their normal.

    Returns
    -------
    ndarray
        Boolean. Shape: (*grid.shape, numrx, 1)
    """
    points = grid.to_1d_points()
    r = points[:, np.newaxis, :] - rx.positions[np.newaxis]
    norm = np.linalg.norm(r, axis=-1)
    with np.errstate(invalid="ignore", divide="ignore"):
        cosine = np.einsum("pnk,nk->pn", r, rx.normals) / norm
    cosine = np.nan_to_num(cosine, nan=0.0)
    apod = cosine >= np.cos(theta)
    return apod.reshape(grid.shape + (rx.numelements, 1))
