"""
Time-domain delay-and-sum beamforming.

For a pixel ``P``, a receive element ``n`` and a transmit ``m``, the sampling time
is::

    tau[P, n, m] = (d_tx[P, m] + d_rx[P, n]) / c0

where ``d_rx`` is the distance between the pixel and the receive element, and
``d_tx`` depends on the kind of sequence:

- ``fsa``: distance between the pixel and the transmit element,
- ``vs``: distance between the pixel and the virtual source, negative if the
  pixel is before the virtual source along the z-axis,
- ``pw``: projection of the pixel on the direction of the plane wave.

The transmits are processed by blocks, concurrently. The transmit and receive
delays are kept separate (cf. :meth:`echobeam.core.ChannelData.sample2sep`).

"""

import concurrent.futures
import logging

import numpy as np

from ..config import DasOptions
from ..core import SequenceKind
from ..exceptions import InvalidDimension, InvalidShape
from ..geometry import distance_pairwise, signed_distance
from ..helpers import chunk_array, default_block_size, sizeof_fmt, timeit
from ..sampling import Backend

__all__ = [
    "bf_das",
    "transmit_distances",
    "receive_distances",
    "pixel_weights",
    "delay_and_sum",
]

logger = logging.getLogger(__name__)


def transmit_distances(sequence, tx, points, numthreads=None):
    """
    Transmit path length for each point and each pulse.

    Parameters
    ----------
    sequence : Sequence
    tx : Aperture
    points : ndarray
        Shape: (numpoints, 3)

    Returns
    -------
    ndarray
        Shape: (numpoints, numpulses)
    """
    if sequence.kind is SequenceKind.fsa:
        return signed_distance(points, tx.positions, numthreads=numthreads)
    elif sequence.kind is SequenceKind.vs:
        return signed_distance(points, sequence.focus, numthreads=numthreads)
    elif sequence.kind is SequenceKind.pw:
        return points @ sequence.focus.T
    else:
        raise NotImplementedError(sequence.kind)


def receive_distances(rx, points, numthreads=None):
    """Distance between each point and each receive element. Shape: (numpoints, numelements)"""
    return distance_pairwise(points, rx.positions, numthreads=numthreads)


def pixel_weights(apod, grid_shape, numrx, numtx):
    """
    Flatten the pixel axes of an apodization.

    Parameters
    ----------
    apod : ndarray or float
        Broadcastable to ``(*grid_shape, numrx, numtx)``.

    Returns
    -------
    ndarray
        Shape ``(numpoints or 1, numrx or 1, numtx or 1)``. The pixel axis is a
        singleton if the apodization does not depend on the pixel.
    """
    apod = np.asarray(apod)
    full_shape = tuple(grid_shape) + (numrx, numtx)
    if apod.ndim > len(full_shape):
        raise InvalidDimension.message_auto(
            "apod", "at most {}".format(len(full_shape)), apod.ndim
        )
    apod = apod.reshape((1,) * (len(full_shape) - apod.ndim) + apod.shape)
    for d, (size, expected) in enumerate(zip(apod.shape, full_shape)):
        if size not in (1, expected):
            raise InvalidShape.broadcast_mismatch("apod", "image", d, size, expected)
    numrx_apod, numtx_apod = apod.shape[-2:]
    if all(size == 1 for size in apod.shape[:-2]):
        return apod.reshape(1, numrx_apod, numtx_apod)
    apod = np.broadcast_to(apod, tuple(grid_shape) + (numrx_apod, numtx_apod))
    return apod.reshape(-1, numrx_apod, numtx_apod)


def _sound_speed(c0, grid):
    c0 = np.asarray(c0, dtype=float)
    if c0.ndim == 0:
        return c0
    return np.broadcast_to(c0, grid.shape).reshape(-1, 1)


def _check_apertures(chd, tx, rx, sequence):
    if rx.numelements != chd.numrx:
        raise InvalidShape(
            "Receive aperture has {} elements, channel data has {}".format(
                rx.numelements, chd.numrx
            )
        )
    numpulses = sequence.numpulses(tx)
    if numpulses != chd.numtx:
        raise InvalidShape(
            "Sequence has {} pulses, channel data has {} transmits".format(
                numpulses, chd.numtx
            )
        )


def _accumulate(results, keep_tx):
    """Concatenate (keep_tx) or sum the block results, in order."""
    if keep_tx:
        return np.concatenate(list(results), axis=3)
    results = iter(results)
    out = next(results)
    for result in results:
        out = out + result
    return out


def delay_and_sum(chd, tau_tx, tau_rx, weights, options):
    """
    Sample and sum channel data by blocks of transmits.

    Parameters
    ----------
    chd : ChannelData
        Axes ``T, N, M, free...``.
    tau_tx : ndarray
        Transmit delays (s). Shape: (numpoints, numtx)
    tau_rx : ndarray
        Receive delays (s). Shape: (numpoints, numrx)
    weights : ndarray
        Shape: (numpoints or 1, numrx or 1, numtx or 1)
    options : DasOptions

    Returns
    -------
    ndarray
        Shape ``(numpoints, *free, [numrx], [numtx])``: the receive (transmit) axis
        is present only if ``options.keep_rx`` (``options.keep_tx``).
    """
    numpoints = tau_rx.shape[0]
    numrx = chd.numrx
    numtx = chd.numtx
    free_ones = (1,) * (chd.ndim - 3)

    reduce_axes = []
    if not options.keep_rx:
        reduce_axes.append("N")
    if not options.keep_tx:
        reduce_axes.append("M")

    block_size = options.block_size
    if block_size is None:
        block_size = default_block_size(
            numrx * numpoints, numthreads=options.numthreads
        )
    trx = tau_rx.reshape((numpoints, 1, numrx, 1) + free_ones)

    def beamform_block(sel):
        ttx = tau_tx[:, sel]
        ttx = ttx.reshape((numpoints, 1, 1, ttx.shape[1]) + free_ones)
        w = weights[..., sel] if weights.shape[-1] > 1 else weights
        w = w.reshape((w.shape[0], 1) + w.shape[1:] + free_ones)
        return chd.sub(sel, "M").sample2sep(
            ttx,
            trx,
            options.interpolation,
            w,
            reduce_axes,
            options.fmod,
            options.backend,
        )

    blocks = [chunk[0] for chunk in chunk_array((numtx,), block_size)]
    logger.debug(
        "Delay-and-sum of {} transmits in {} blocks (delays: {} per block)".format(
            numtx, len(blocks), sizeof_fmt(8 * numpoints * numrx * block_size)
        )
    )

    if options.backend is Backend.numba:
        # the numba kernels run in parallel: one block at a time on this thread
        out = _accumulate(map(beamform_block, blocks), options.keep_tx)
    else:
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=options.numthreads
        ) as executor:
            futures = [executor.submit(beamform_block, sel) for sel in blocks]
            out = _accumulate(
                (future.result() for future in futures), options.keep_tx
            )

    # (numpoints, 1, N, M, *free) -> (numpoints, *free, [N], [M])
    out = np.moveaxis(out[:, 0], (1, 2), (-2, -1))
    if not options.keep_tx:
        out = out[..., 0]
    if not options.keep_rx:
        out = out[..., 0, :] if options.keep_tx else out[..., 0]
    return out


def bf_das(chd, tx, rx, sequence, grid, c0, apod=1.0, options=None, **kwargs):
    """
    Delay-and-sum beamforming in a homogeneous medium.

    Parameters
    ----------
    chd : ChannelData
    tx : Aperture
        Transmit aperture.
    rx : Aperture
        Receive aperture.
    sequence : Sequence
    grid : Grid or PolarGrid
    c0 : float or ndarray
        Sound speed (m/s). Scalar or one value per pixel.
    apod : ndarray or float
        Apodization, broadcastable to ``(*grid.shape, numrx, numtx)``.
    options : DasOptions or None
    kwargs
        Fields of :class:`DasOptions`, if ``options`` is not given.

    Returns
    -------
    ndarray
        Shape ``(*grid.shape, *free, [numrx], [numtx])``.

    """
    options = DasOptions.from_call(options, kwargs)
    chd = chd.canonical()
    _check_apertures(chd, tx, rx, sequence)
    points = grid.to_1d_points()
    c0 = _sound_speed(c0, grid)

    with timeit("Delay-and-sum", logger=logger):
        tau_tx = transmit_distances(sequence, tx, points, options.numthreads) / c0
        tau_rx = receive_distances(rx, points, options.numthreads) / c0
        weights = pixel_weights(apod, grid.shape, chd.numrx, chd.numtx)
        out = delay_and_sum(chd, tau_tx, tau_rx, weights, options)
    return out.reshape(grid.shape + out.shape[1:])
