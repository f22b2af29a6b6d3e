"""
Delay-and-sum beamforming in a heterogeneous medium.

The travel times between each element and the pixels are obtained by solving the
eikonal equation on a sound speed map, once per element, then interpolated at the
pixels. The beamforming itself is the one of :mod:`echobeam.im.das`, for full
synthetic aperture data.

The solver is a callable ``solver(speed, axes, source) -> travel_time``:

- ``speed``: sound speed on the map, restricted to its axes with more than one
  point,
- ``axes``: coordinates along these axes (tuple of 1d arrays),
- ``source``: coordinates of the element along these axes,
- ``travel_time``: first-arrival time from the source, same shape as ``speed``.

The default solver :func:`fmm_travel_time` uses the fast marching method of
scikit-fmm.

"""

import concurrent.futures
import logging

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from ..config import EikonalOptions
from ..exceptions import InvalidShape, PreconditionError
from ..helpers import timeit
from .das import delay_and_sum, pixel_weights

__all__ = ["SoundSpeedMap", "fmm_travel_time", "bf_eikonal"]

logger = logging.getLogger(__name__)


class SoundSpeedMap:
    """
    Sound speed sampled on a regular grid.

    Parameters
    ----------
    c : ndarray or float
        Sound speed (m/s). Shape: ``grid.shape``
    grid : Grid

    """

    __slots__ = ("c", "grid")

    def __init__(self, c, grid):
        c = np.asarray(c, dtype=float)
        if c.ndim == 0:
            c = np.full(grid.shape, float(c))
        if c.shape != grid.shape:
            raise InvalidShape.message_auto("c", grid.shape, c.shape)
        if not np.all(c > 0.0):
            raise ValueError("The sound speed must be positive")
        self.c = c
        self.grid = grid

    @property
    def kept_axes(self):
        """Axes of the grid with more than one point."""
        return [d for d, n in enumerate(self.grid.shape) if n > 1]

    @property
    def axes(self):
        return tuple(self.grid.axes[d] for d in self.kept_axes)

    @property
    def step(self):
        """
        Grid step, common to all axes.

        Raises
        ------
        PreconditionError
            If the grid steps differ between the axes.
        """
        steps = self.grid.steps
        if not steps:
            raise PreconditionError("The sound speed map must have more than one point")
        if not np.allclose(steps, steps[0], rtol=1e-9, atol=0.0):
            raise PreconditionError(
                "The sound speed map must have the same step along all axes "
                "(current: {})".format(steps)
            )
        return steps[0]

    def squeezed(self):
        """Sound speed on the axes with more than one point."""
        return self.c.reshape(tuple(len(axis) for axis in self.axes))


def fmm_travel_time(speed, axes, source, order=2):
    """
    Travel time from a point source with the fast marching method of scikit-fmm.

    The front is initialised on a circle of one grid step around the source; the
    travel time inside this circle is the one of a straight ray.

    Parameters
    ----------
    speed : ndarray
    axes : tuple of ndarray
        Regularly spaced coordinates, with a common step.
    source : ndarray
        Coordinates of the source; it must lie within the map.
    order : int
        Order of the finite difference scheme (1 or 2).

    Returns
    -------
    ndarray
        Shape: ``speed.shape``
    """
    import skfmm

    step = axes[0][1] - axes[0][0]
    mesh = np.meshgrid(*axes, indexing="ij")
    dist = np.sqrt(sum((m - x) ** 2 for m, x in zip(mesh, source)))
    nearest = tuple(int(np.argmin(np.abs(axis - x))) for axis, x in zip(axes, source))
    c_source = speed[nearest]

    phi = dist - step
    travel_time = np.asarray(skfmm.travel_time(phi, speed, dx=step, order=order))
    return np.where(phi > 0.0, travel_time + step / c_source, dist / c_source)


def bf_eikonal(
    chd, tx, rx, grid, speed, apod=1.0, solver=None, options=None, **kwargs
):
    """
    Delay-and-sum beamforming of full synthetic aperture data with travel times
    solved on a sound speed map.

    Parameters
    ----------
    chd : ChannelData
        One transmit per element of ``tx``.
    tx : Aperture
    rx : Aperture
    grid : Grid or PolarGrid
        Image grid.
    speed : SoundSpeedMap
        Must contain the elements.
    apod : ndarray or float
        Broadcastable to ``(*grid.shape, numrx, numtx)``.
    solver : callable or None
        Default: :func:`fmm_travel_time`.
    options : EikonalOptions or None
    kwargs
        Fields of :class:`EikonalOptions`, if ``options`` is not given.

    Returns
    -------
    ndarray
        Shape ``(*grid.shape, *free, [numrx], [numtx])``.

    Raises
    ------
    PreconditionError
        If the steps of the sound speed map differ between axes, or if the
        apertures do not match the channel data.

    """
    options = EikonalOptions.from_call(options, kwargs)
    step = speed.step
    chd = chd.canonical()
    if chd.numrx != rx.numelements or chd.numtx != tx.numelements:
        raise PreconditionError(
            "Expected data for {} receive and {} transmit elements (current: {}, {})".format(
                rx.numelements, tx.numelements, chd.numrx, chd.numtx
            )
        )
    if solver is None:
        solver = fmm_travel_time

    kept = speed.kept_axes
    axes = speed.axes
    c = speed.squeezed()
    points = grid.to_1d_points()[:, kept]
    method = options.interpolant
    if method == "cubic" and min(len(axis) for axis in axes) < 4:
        logger.debug("Linear travel time interpolant: too few points for 'cubic'")
        method = "linear"

    def travel_times(source):
        travel_time = solver(c, axes, source)
        interpolant = RegularGridInterpolator(
            axes, travel_time, method=method, bounds_error=False, fill_value=np.nan
        )
        return interpolant(points)

    shared = np.array_equal(tx.positions, rx.positions)
    with timeit("Eikonal delay-and-sum", logger=logger):
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=options.numthreads
        ) as executor:
            rx_futures = [
                executor.submit(travel_times, source) for source in rx.positions[:, kept]
            ]
            if shared:
                tx_futures = rx_futures
            else:
                tx_futures = [
                    executor.submit(travel_times, source)
                    for source in tx.positions[:, kept]
                ]
            tau_rx = np.stack([future.result() for future in rx_futures], axis=-1)
            tau_tx = np.stack([future.result() for future in tx_futures], axis=-1)
        logger.debug(
            "{} travel time fields solved on a {:.3g} m grid".format(
                len(rx_futures) if shared else len(rx_futures) + len(tx_futures), step
            )
        )

        weights = pixel_weights(apod, grid.shape, chd.numrx, chd.numtx)
        out = delay_and_sum(chd, tau_tx, tau_rx, weights, options)
    return out.reshape(grid.shape + out.shape[1:])
