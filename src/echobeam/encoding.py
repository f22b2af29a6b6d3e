"""
Retrospective transmit encoding and decoding.

:func:`focus_tx` synthesises the transmits of a sequence from full synthetic
aperture (FSA) data: the data of each element is delayed by its firing time,
weighted by its apodization, then summed over the elements::

    z[t, n, v] = sum_m a[m, v] x[t - d[m, v], n, m]

:func:`refocus` goes the other way. At each frequency, the encoding above is the
product by ``H[f, m, v] = a[m, v] exp(-2i pi f d[m, v])``, which is inverted in the
least squares sense with Tikhonov regularisation::

    Hi[f] = (H[f]^H H[f] + gamma I)^-1 H[f]^H

The decoded data is an approximation of the FSA data; the error grows with
``gamma``.

"""

import logging
import math

import numpy as np

from . import settings as s
from .core import SequenceKind
from .exceptions import InvalidShape
from .helpers import timeit

__all__ = ["focus_tx", "refocus"]

logger = logging.getLogger(__name__)


def _is_identity_fsa(sequence, delays, apod):
    return (
        sequence.kind is SequenceKind.fsa
        and not np.any(delays)
        and apod.shape == (delays.shape[0], delays.shape[0])
        and np.array_equal(apod, np.eye(delays.shape[0]))
    )


def _sequence_matrices(chd, tx, sequence):
    delays = sequence.delays(tx)
    apod = np.broadcast_to(sequence.apodization(tx), delays.shape)
    if delays.shape[0] != chd.numtx:
        raise InvalidShape(
            "The sequence has {} elements, channel data has {} transmits".format(
                delays.shape[0], chd.numtx
            )
        )
    return delays, apod


def focus_tx(
    chd, tx, sequence, interpolation="cubic", length=None, buffer=0, backend="numpy"
):
    """
    Synthesise the transmits of a sequence from FSA data.

    Parameters
    ----------
    chd : ChannelData
        FSA data: one transmit per element of ``tx``.
    tx : Aperture
    sequence : Sequence
    interpolation : Interpolation or str
    length : int, 'pow2' or None
        Number of output time samples, at least the number of samples needed to
        capture all delays. 'pow2' rounds it up to the next power of 2, which suits
        'freq' interpolation. Default: the number of samples needed.
    buffer : int
        Extra samples at the end of the record.
    backend : Backend or str

    Returns
    -------
    ChannelData
        One transmit per pulse of the sequence.

    """
    chd = chd.canonical()
    delays, apod = _sequence_matrices(chd, tx, sequence)
    if _is_identity_fsa(sequence, delays, apod):
        return chd

    # the output record starts nmin samples later and is nmax - nmin samples longer
    nmin = math.floor(np.min(delays) * chd.fs)
    nmax = math.ceil(np.max(delays) * chd.fs)
    numsamples = chd.numsamples + (nmax - nmin) + int(buffer)
    if length == "pow2":
        numsamples = 1 << (numsamples - 1).bit_length()
    elif length is not None:
        if int(length) < numsamples:
            logger.warning(
                "Requested length {} is shorter than the {} samples needed".format(
                    length, numsamples
                )
            )
        numsamples = int(length)

    t0 = chd.t0.min(axis=chd.order.transmit_axis, keepdims=True) + nmin / chd.fs
    time = t0 + np.reshape(
        np.arange(numsamples) / chd.fs, (-1,) + (1,) * (chd.ndim - 1)
    )
    numpulses = delays.shape[1]
    free_ones = (1,) * (chd.ndim - 3)
    # (V, T', 1, M, free...): pulses are extra leading axes
    tau = time[np.newaxis] - delays.T.reshape(
        (numpulses, 1, 1, chd.numtx) + free_ones
    )
    weights = apod.T.reshape((numpulses, 1, 1, chd.numtx) + free_ones)
    with timeit("Transmit synthesis", logger=logger):
        z = chd.sample(tau, interpolation, weights, ["M"], backend=backend)

    # (V, T', N, 1, free...) -> (T', N, V, free...)
    z = np.moveaxis(z[:, :, :, 0], 0, 2)
    logger.debug("{} transmits synthesised from {} elements".format(numpulses, chd.numtx))
    return chd.replace(data=z, t0=t0)


def refocus(chd, tx, sequence, gamma=None):
    """
    Recover FSA data from the transmits of a sequence.

    Parameters
    ----------
    chd : ChannelData
        One transmit per pulse of ``sequence``.
    tx : Aperture
    sequence : Sequence
    gamma : float or None
        Tikhonov regularisation. Default: ``(numrx / 10) ** 2``.

    Returns
    -------
    ChannelData
        One transmit per element of ``tx``.

    """
    chd = chd.canonical()
    delays = sequence.delays(tx)
    apod = np.broadcast_to(sequence.apodization(tx), delays.shape)
    numelements, numpulses = delays.shape
    if numpulses != chd.numtx:
        raise InvalidShape(
            "The sequence has {} pulses, channel data has {} transmits".format(
                numpulses, chd.numtx
            )
        )
    if gamma is None:
        gamma = (chd.numrx / 10) ** 2

    nfft = chd.numsamples
    f = np.fft.fftfreq(nfft, 1 / chd.fs)
    with timeit("Transmit decoding", logger=logger):
        # (T, M, V)
        h = apod * np.exp(-2j * np.pi * f[:, np.newaxis, np.newaxis] * delays)
        normal = np.conj(np.swapaxes(h, 1, 2)) @ h
        normal += gamma * np.eye(numpulses)
        # (T, V, M)
        hi = np.linalg.solve(normal, np.conj(np.swapaxes(h, 1, 2))).astype(s.COMPLEX)

        t0_out = float(np.min(chd.t0))
        fshape = (nfft,) + (1,) * (chd.ndim - 1)
        x = np.fft.fft(chd.data, nfft, axis=0)
        x = x * np.exp(-2j * np.pi * f.reshape(fshape) * chd.t0)
        y = np.einsum("tnv...,tvm->tnm...", x, hi)
        y = y * np.exp(2j * np.pi * f.reshape(fshape) * t0_out)
        y = np.fft.ifft(y, nfft, axis=0)
    if not np.iscomplexobj(chd.data):
        y = y.real
    logger.debug("{} elements recovered from {} transmits".format(numelements, numpulses))
    return chd.replace(data=y, t0=t0_out)
