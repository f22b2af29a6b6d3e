"""
Frequency-domain adjoint beamforming.

At a frequency ``f``, the data of receive element ``n`` for transmit ``v`` is
modelled as::

    X[f, n, v] = sum_m G_rx[f, P, n] G_tx[f, P, m] T[f, m, v]

where ``G[f, P, n] = exp(-2i pi f tau[P, n])`` is the phasor of the travel time
between a pixel ``P`` and an element, and ``T[f, m, v] = a[m, v] exp(-2i pi f
delay[m, v])`` encodes the transmit sequence. The image is the adjoint of this
model applied to the data, summed over frequency::

    b[P] = sum_f sum_n sum_v conj(G_rx[f, P, n]) X[f, n, v] conj(A[f, P, v]) / |A[f, P]|

with the steering vector ``A[f, P, v] = sum_m G_tx[f, P, m] T[f, m, v]``.

The frequencies are regularly spaced (``f_k = k df``), so the phasors are computed
once for ``df`` and raised to the power ``k``.

"""

import concurrent.futures
import logging

import numpy as np

from .. import settings as s
from ..config import AdjointOptions
from ..exceptions import (
    InsufficientPrecisionWarning,
    NumericalDegradationWarning,
    UnsupportedConfiguration,
)
from ..geometry import distance_pairwise
from ..helpers import chunk_array, default_block_size, timeit, warn_and_log
from ..ut import decibel
from .das import _check_apertures, pixel_weights

__all__ = ["bf_adjoint"]

logger = logging.getLogger(__name__)


def _split_apodization(apod, grid_shape, numrx, numtx):
    """
    Split an apodization into factors over (receive, transmit), (pixel, transmit)
    and (pixel, receive). At most one of them is not trivial.

    Raises
    ------
    UnsupportedConfiguration
        If the apodization varies over the pixels, the receive elements and the
        transmits at the same time.
    """
    weights = pixel_weights(apod, grid_shape, numrx, numtx)
    numpoints_apod, numrx_apod, numtx_apod = weights.shape
    one = np.ones((1, 1))
    if numpoints_apod == 1:
        return weights[0], one, one
    if numrx_apod == 1:
        return one, weights[:, 0, :], one
    if numtx_apod == 1:
        return one, one, weights[:, :, 0]
    raise UnsupportedConfiguration(
        "The apodization of the adjoint beamformer must be a singleton along the "
        "pixels, the receive elements or the transmits (current shape: {})".format(
            np.shape(apod)
        )
    )


def _selected_frequencies(spectra, numfreq, fs, fthresh):
    """Index of the frequencies below fs/2 whose peak amplitude is above ``fthresh`` dB."""
    freqs = np.arange(numfreq) * fs / numfreq
    keep = freqs < fs / 2
    if np.isfinite(fthresh):
        peak = np.abs(spectra).reshape(numfreq, -1).max(axis=1)
        keep &= decibel(peak) >= fthresh
    return np.flatnonzero(keep)


def bf_adjoint(chd, tx, rx, sequence, grid, c0, apod=1.0, options=None, **kwargs):
    """
    Adjoint beamforming in the frequency domain.

    Parameters
    ----------
    chd : ChannelData
    tx : Aperture
    rx : Aperture
    sequence : Sequence
    grid : Grid or PolarGrid
    c0 : float
        Sound speed (m/s).
    apod : ndarray or float
        Apodization, broadcastable to ``(*grid.shape, numrx, numtx)`` and singleton
        along all pixel axes, the receive axis or the transmit axis.
    options : AdjointOptions or None
    kwargs
        Fields of :class:`AdjointOptions`, if ``options`` is not given.

    Returns
    -------
    ndarray
        Shape ``(*grid.shape, *free, [numrx], [numtx])``.

    Raises
    ------
    UnsupportedConfiguration
        Apodization varying along the pixels, the receive and the transmit axes.

    """
    options = AdjointOptions.from_call(options, kwargs)
    chd = chd.canonical()
    _check_apertures(chd, tx, rx, sequence)
    numrx = chd.numrx
    numtx = chd.numtx
    a_nv, a_pv, a_pn = _split_apodization(apod, grid.shape, numrx, numtx)

    if chd.dtype == np.float16:
        warn_and_log(
            "Half-precision data is not accurate enough for the adjoint beamformer",
            InsufficientPrecisionWarning,
            logger,
            stacklevel=2,
        )

    free_shape = chd.free_shape
    numfree = int(np.prod(free_shape))
    points = grid.to_1d_points()
    numpoints = points.shape[0]
    nfft = options.nfft or chd.numsamples
    fs = chd.fs
    df = fs / nfft

    with timeit("Adjoint beamforming", logger=logger):
        # Spectra of the data, re-aligned to t = 0 for each transmit
        x = np.asarray(chd.data)
        if options.fmod != 0.0:
            x = x * np.exp(2j * np.pi * options.fmod * chd.time)
        x = np.fft.fft(x, nfft, axis=0)
        freqs = np.arange(nfft) * df
        t0 = chd.t0
        x *= np.exp(-2j * np.pi * freqs.reshape((-1,) + (1,) * (chd.ndim - 1)) * t0)
        x = x.reshape(nfft, numrx, numtx, numfree)

        kept = _selected_frequencies(x, nfft, fs, options.fthresh)
        logger.debug("{} frequencies out of {} kept".format(len(kept), nfft))

        tau_rx = distance_pairwise(points, rx.positions) / c0
        tau_tx = distance_pairwise(points, tx.positions) / c0
        w_rx = np.exp(-2j * np.pi * df * tau_rx)
        w_tx = np.exp(-2j * np.pi * df * tau_tx)
        w_steer = np.exp(-2j * np.pi * df * sequence.delays(tx, c0))
        apod_tx = sequence.apodization(tx)

        block_size = options.block_size
        if block_size is None:
            block_size = default_block_size(
                4 * numrx * numpoints, numthreads=options.numthreads
            )

        def beamform_block(k):
            k = k.astype(s.FLOAT)
            # power recurrence: phasors at f_k = k df
            g_rx = w_rx[np.newaxis] ** k[:, np.newaxis, np.newaxis]
            g_tx = w_tx[np.newaxis] ** k[:, np.newaxis, np.newaxis]
            t_tx = apod_tx * w_steer[np.newaxis] ** k[:, np.newaxis, np.newaxis]
            steering = g_tx @ t_tx
            norm = np.linalg.norm(steering, axis=-1, keepdims=True)
            tiny = norm <= np.finfo(s.FLOAT).tiny
            if np.any(tiny):
                warn_and_log(
                    "Vanishing steering vector for {} (pixel, frequency) pairs; "
                    "their contribution is set to 0".format(np.count_nonzero(tiny)),
                    NumericalDegradationWarning,
                    logger,
                    stacklevel=2,
                )
            ainv = np.conj(steering) / np.where(tiny, np.inf, norm)

            xk = x[k.astype(int)] * a_nv[np.newaxis, :, :, np.newaxis]
            g_rx = np.conj(a_pn[np.newaxis] * g_rx)
            if options.keep_rx:
                yn = g_rx[..., np.newaxis, np.newaxis] * xk[:, np.newaxis]
            else:
                yn = np.einsum("bpn,bnvf->bpvf", g_rx, xk)[:, :, np.newaxis]
            # yn: (block, pixel, numrx or 1, numtx, free)
            yn = yn * a_pv[np.newaxis, :, np.newaxis, :, np.newaxis]
            if options.keep_tx:
                y = yn * ainv[:, :, np.newaxis, :, np.newaxis]
            else:
                y = np.einsum("bpnvf,bpv->bpnf", yn, ainv)[:, :, :, np.newaxis]
            return y.sum(axis=0)

        blocks = [kept[chunk] for chunk in chunk_array((len(kept),), block_size)]
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=options.numthreads
        ) as executor:
            futures = [executor.submit(beamform_block, k) for k in blocks]
            out = np.zeros(
                (
                    numpoints,
                    numrx if options.keep_rx else 1,
                    numtx if options.keep_tx else 1,
                    numfree,
                ),
                s.COMPLEX,
            )
            for future in futures:
                out += future.result()

    # (numpoints, N, M, free) -> (*grid.shape, *free, [N], [M])
    out = out.reshape(out.shape[:3] + free_shape)
    out = np.moveaxis(out, (1, 2), (-2, -1))
    if not options.keep_tx:
        out = out[..., 0]
    if not options.keep_rx:
        out = out[..., 0, :] if options.keep_tx else out[..., 0]
    return out.reshape(grid.shape + out.shape[1:])
