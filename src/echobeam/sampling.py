"""
Sampling kernel: interpolate data at fractional sample indices, then weight and
reduce the result.

Layout
======

The data ``x`` has its time axis at ``axis``. The delays ``ntau`` are fractional
sample indices (0 is the first sample of ``x``), with at least as many axes as
``x``:

- the last ``x.ndim`` axes of ``ntau`` are aligned with the axes of ``x``,
- extra leading axes of ``ntau`` are free (typically pixel axes),
- the size of ``ntau`` along the time axis is the number of output samples,
- any other aligned axis must be equal to the one of ``x`` or be one.

The output has the shape of the broadcast of ``ntau`` and ``x`` (time axis taken
from ``ntau``), times the weights, with the reduced axes kept as singletons.

A sample whose delay is outside ``[0, T-1]`` (or NaN) is 0. Kernel taps outside
the record are 0.

Interpolation
=============

Each method of :class:`Interpolation` is implemented once per backend and chosen
once per call:

- ``nearest``: closest sample,
- ``linear``: two taps,
- ``cubic``: Keys cubic convolution (a=-0.5), four taps,
- ``lanczos3``: windowed sinc ``sinc(d) sinc(d/3)``, six taps,
- ``freq``: exact band-limited evaluation from the discrete Fourier transform of
  the record. Only implemented with numpy.

"""

import enum
import logging
import math

import numba
import numpy as np

from . import settings as s
from .exceptions import InvalidDimension, InvalidShape
from .helpers import chunk_array, parse_enum_constant

__all__ = ["Interpolation", "Backend", "sample", "sample2sep"]

logger = logging.getLogger(__name__)


class Interpolation(enum.Enum):
    nearest = 0
    linear = 1
    cubic = 2
    lanczos3 = 3
    freq = 4


class Backend(enum.Enum):
    numpy = 0
    numba = 1


# ------------------------------------------------------------------------------
# numpy kernels


def _triangle(d):
    return np.maximum(0.0, 1.0 - np.abs(d))


def _keys_cubic(d):
    d = np.abs(d)
    inner = (1.5 * d - 2.5) * d * d + 1.0
    outer = ((-0.5 * d + 2.5) * d - 4.0) * d + 2.0
    return np.where(d <= 1.0, inner, np.where(d < 2.0, outer, 0.0))


def _lanczos3(d):
    return np.where(np.abs(d) < 3.0, np.sinc(d) * np.sinc(d / 3.0), 0.0)


# method: (first tap relative to floor(t), number of taps, kernel)
_TAPS = {
    Interpolation.linear: (0, 2, _triangle),
    Interpolation.cubic: (-1, 4, _keys_cubic),
    Interpolation.lanczos3: (-2, 6, _lanczos3),
}


def _output_dtype(dtype):
    return np.result_type(dtype, np.float32)


def _interp_numpy(x, traces, tau, method):
    numsamples = x.shape[1]
    valid = (tau >= 0.0) & (tau <= numsamples - 1)
    tau = np.where(valid, tau, 0.0)
    rows = traces[:, np.newaxis]

    if method is Interpolation.nearest:
        out = x[rows, np.floor(tau + 0.5).astype(np.intp)].astype(
            _output_dtype(x.dtype)
        )
    else:
        first, numtaps, kernel = _TAPS[method]
        i0 = np.floor(tau).astype(np.intp)
        frac = tau - i0
        out = np.zeros(tau.shape, _output_dtype(x.dtype))
        for k in range(first, first + numtaps):
            idx = i0 + k
            inside = (idx >= 0) & (idx < numsamples)
            vals = x[rows, np.clip(idx, 0, numsamples - 1)]
            out += np.where(inside, kernel(frac - k) * vals, 0.0)
    out[~valid] = 0.0
    return out


def _interp_freq(x, traces, tau, block_size=None):
    """
    Band-limited interpolation: ``y(t) = 1/T sum_k X[k] exp(2i pi f_k t)``.

    The frequencies are processed by blocks to bound the size of the phasors.
    """
    if block_size is None:
        block_size = s.BLOCK_SIZE_FREQ_INTERP
    numsamples = x.shape[1]
    spectra = np.fft.fft(x, axis=1)[traces]
    freqs = np.fft.fftfreq(numsamples)
    valid = (tau >= 0.0) & (tau <= numsamples - 1)
    tau = np.where(valid, tau, 0.0)

    out = np.zeros(tau.shape, s.COMPLEX)
    chunk_size = max(1, block_size // max(1, tau.size))
    for chunk in chunk_array((numsamples,), chunk_size):
        phasors = np.exp(2j * np.pi * tau[..., np.newaxis] * freqs[chunk])
        out += np.einsum("rk,rik->ri", spectra[:, chunk[0]], phasors)
    out /= numsamples

    if x.dtype.kind != "c":
        out = out.real
    out[~valid] = 0.0
    return out


# ------------------------------------------------------------------------------
# numba kernels
# Compiled without fastmath: NaN delays must compare as out of range.


@numba.jit(nopython=True, nogil=True)
def _keys_cubic_scalar(d):
    d = abs(d)
    if d <= 1.0:
        return (1.5 * d - 2.5) * d * d + 1.0
    if d < 2.0:
        return ((-0.5 * d + 2.5) * d - 4.0) * d + 2.0
    return 0.0


@numba.jit(nopython=True, nogil=True)
def _lanczos3_scalar(d):
    if d == 0.0:
        return 1.0
    if abs(d) >= 3.0:
        return 0.0
    pd = math.pi * d
    return 3.0 * math.sin(pd) * math.sin(pd / 3.0) / (pd * pd)


@numba.jit(nopython=True, nogil=True, parallel=s.USE_PARALLEL)
def _interp_nearest_numba(x, traces, tau, out):
    numrows, numout = tau.shape
    numsamples = x.shape[1]
    for row in numba.prange(numrows):
        trace = traces[row]
        for i in range(numout):
            t = tau[row, i]
            if t >= 0.0 and t <= numsamples - 1:
                out[row, i] = x[trace, int(math.floor(t + 0.5))]
            else:
                out[row, i] = 0.0


@numba.jit(nopython=True, nogil=True, parallel=s.USE_PARALLEL)
def _interp_linear_numba(x, traces, tau, out):
    numrows, numout = tau.shape
    numsamples = x.shape[1]
    for row in numba.prange(numrows):
        trace = traces[row]
        for i in range(numout):
            t = tau[row, i]
            if t >= 0.0 and t <= numsamples - 1:
                i0 = int(math.floor(t))
                u = t - i0
                acc = x[trace, i0] * (1.0 - u)
                if i0 + 1 < numsamples:
                    acc += x[trace, i0 + 1] * u
                out[row, i] = acc
            else:
                out[row, i] = 0.0


@numba.jit(nopython=True, nogil=True, parallel=s.USE_PARALLEL)
def _interp_cubic_numba(x, traces, tau, out):
    numrows, numout = tau.shape
    numsamples = x.shape[1]
    for row in numba.prange(numrows):
        trace = traces[row]
        for i in range(numout):
            t = tau[row, i]
            if t >= 0.0 and t <= numsamples - 1:
                i0 = int(math.floor(t))
                u = t - i0
                acc = x[trace, i0] * 0.0
                for k in range(-1, 3):
                    j = i0 + k
                    if j >= 0 and j < numsamples:
                        acc += x[trace, j] * _keys_cubic_scalar(u - k)
                out[row, i] = acc
            else:
                out[row, i] = 0.0


@numba.jit(nopython=True, nogil=True, parallel=s.USE_PARALLEL)
def _interp_lanczos3_numba(x, traces, tau, out):
    numrows, numout = tau.shape
    numsamples = x.shape[1]
    for row in numba.prange(numrows):
        trace = traces[row]
        for i in range(numout):
            t = tau[row, i]
            if t >= 0.0 and t <= numsamples - 1:
                i0 = int(math.floor(t))
                u = t - i0
                acc = x[trace, i0] * 0.0
                for k in range(-2, 4):
                    j = i0 + k
                    if j >= 0 and j < numsamples:
                        acc += x[trace, j] * _lanczos3_scalar(u - k)
                out[row, i] = acc
            else:
                out[row, i] = 0.0


_NUMBA_KERNELS = {
    Interpolation.nearest: _interp_nearest_numba,
    Interpolation.linear: _interp_linear_numba,
    Interpolation.cubic: _interp_cubic_numba,
    Interpolation.lanczos3: _interp_lanczos3_numba,
}


def _interpolate(x, traces, tau, method, backend):
    """
    Interpolate the rows of a 2d array.

    Parameters
    ----------
    x : ndarray
        Shape: (numtraces, numsamples)
    traces : ndarray
        Trace of ``x`` used by each row of ``tau``. Shape: (numrows, )
    tau : ndarray
        Fractional sample indices. Shape: (numrows, numout)

    Returns
    -------
    out : ndarray
        Shape: (numrows, numout)
    """
    if method is Interpolation.freq:
        if backend is not Backend.numpy:
            logger.debug("'freq' interpolation runs on the numpy backend")
        return _interp_freq(x, traces, tau)
    if backend is Backend.numba:
        out = np.empty(tau.shape, _output_dtype(x.dtype))
        x = np.ascontiguousarray(x, dtype=out.dtype)
        _NUMBA_KERNELS[method](x, traces, np.ascontiguousarray(tau), out)
        return out
    return _interp_numpy(x, traces, tau, method)


def _check_broadcastable(arr, other, arr_name, other_name, skip_axis=None):
    """Check trailing-aligned broadcasting, ignoring ``skip_axis`` (axis of ``other``)."""
    offset = arr.ndim - other.ndim
    for d in range(other.ndim):
        if d == skip_axis or d + offset < 0:
            continue
        a = arr.shape[d + offset]
        b = other.shape[d]
        if a != b and a != 1 and b != 1:
            raise InvalidShape.broadcast_mismatch(arr_name, other_name, d + offset, a, b)


def sample(
    x,
    ntau,
    axis=0,
    method=Interpolation.cubic,
    weights=1.0,
    reduce_axes=(),
    omega=0.0,
    n0=0.0,
    backend=Backend.numpy,
):
    """
    Sample ``x`` at fractional indices along ``axis``, weight and sum.

    Parameters
    ----------
    x : ndarray
        Data. The time axis is ``axis``.
    ntau : ndarray
        Fractional sample indices. ``ntau.ndim >= x.ndim``; the last ``x.ndim`` axes are
        aligned with ``x``.
    axis : int
        Time axis of ``x``.
    method : Interpolation or str
    weights : ndarray or float
        Multiplied with the interpolated values (trailing broadcasting against the
        output).
    reduce_axes : sequence of int
        Axes of the output summed after weighting. They are kept as singletons.
    omega : float
        Modulation frequency in cycles per sample. The samples are multiplied by
        ``exp(2i pi omega (ntau + n0))``.
    n0 : ndarray or float
        Index of the first sample of ``x`` on the absolute time axis (``t0 * fs``),
        aligned with ``x``.
    backend : Backend or str

    Returns
    -------
    out : ndarray
        ``out.ndim == ntau.ndim``

    Raises
    ------
    InvalidDimension
        If ``ntau`` has less axes than ``x``.
    InvalidShape
        If ``ntau`` or ``weights`` cannot be broadcast against ``x``.

    """
    method = parse_enum_constant(method, Interpolation)
    backend = parse_enum_constant(backend, Backend)
    x = np.asarray(x)
    ntau = np.asarray(ntau, dtype=s.FLOAT)
    if x.ndim == 0:
        raise InvalidDimension.message_auto("x", "at least 1", 0)
    if ntau.ndim < x.ndim:
        raise InvalidDimension.message_auto(
            "ntau", "at least {}".format(x.ndim), ntau.ndim
        )
    axis = axis % x.ndim
    taxis = ntau.ndim - x.ndim + axis
    _check_broadcastable(ntau, x, "delay", "data", skip_axis=axis)

    xm = np.moveaxis(x, axis, -1)
    tm = np.moveaxis(ntau, taxis, -1)
    lead = np.broadcast_shapes(xm.shape[:-1], tm.shape[:-1])
    numsamples = xm.shape[-1]
    numout = tm.shape[-1]
    numtraces = math.prod(xm.shape[:-1])

    x2 = np.ascontiguousarray(xm).reshape(numtraces, numsamples)
    traces = np.broadcast_to(
        np.arange(numtraces).reshape(xm.shape[:-1]), lead
    ).reshape(-1)
    t2 = np.broadcast_to(tm, lead + (numout,)).reshape(-1, numout)

    y = _interpolate(x2, traces, t2, method, backend)
    y = np.moveaxis(y.reshape(lead + (numout,)), -1, taxis)

    if omega != 0.0:
        y = y * np.exp(2j * np.pi * omega * (ntau + np.asarray(n0)))

    weights = np.asarray(weights)
    if weights.ndim > y.ndim:
        raise InvalidDimension.message_auto(
            "weights", "at most {}".format(y.ndim), weights.ndim
        )
    _check_broadcastable(y, weights, "output", "weights")
    if weights.ndim > 0 or weights != 1:
        y = y * weights

    if reduce_axes:
        axes = tuple(sorted({a % y.ndim for a in reduce_axes}))
        y = y.sum(axis=axes, keepdims=True)
    return y


def _take(arr, where, ndim):
    """
    Slice ``arr``, trailing-aligned on ``ndim`` axes, at ``where = {axis: index}``.

    Axes where ``arr`` is a singleton are left untouched.
    """
    arr = np.asarray(arr)
    offset = ndim - arr.ndim
    sel = [slice(None)] * arr.ndim
    for d, i in where.items():
        da = d - offset
        if da >= 0 and arr.shape[da] > 1:
            sel[da] = slice(i, i + 1)
    return arr[tuple(sel)]


def sample2sep(
    x,
    ntau1,
    ntau2,
    axis=0,
    method=Interpolation.cubic,
    weights=1.0,
    reduce_axes=(),
    omega=0.0,
    n0=0.0,
    backend=Backend.numpy,
):
    """
    Same as ``sample(x, ntau1 + ntau2, ...)`` without forming ``ntau1 + ntau2``
    at once.

    The axes where only the smaller of the two delays varies are iterated over. At
    each step, the delays are only as large as the larger of the two.
    Reduced axes are accumulated; kept axes are written in place.

    Cf. :func:`sample` for the parameters.
    """
    x = np.asarray(x)
    ntau1 = np.asarray(ntau1, dtype=s.FLOAT)
    ntau2 = np.asarray(ntau2, dtype=s.FLOAT)
    ndim = max(ntau1.ndim, ntau2.ndim)
    if ndim < x.ndim:
        raise InvalidDimension.message_auto("ntau", "at least {}".format(x.ndim), ndim)
    ntau1 = ntau1.reshape((1,) * (ndim - ntau1.ndim) + ntau1.shape)
    ntau2 = ntau2.reshape((1,) * (ndim - ntau2.ndim) + ntau2.shape)
    _check_broadcastable(ntau1, ntau2, "delay1", "delay2")
    taxis = ndim - x.ndim + axis % x.ndim

    if ntau1.size <= ntau2.size:
        small, big = ntau1, ntau2
    else:
        small, big = ntau2, ntau1
    loop_axes = [
        d
        for d in range(ndim)
        if d != taxis and small.shape[d] > 1 and big.shape[d] == 1
    ]
    if not loop_axes:
        return sample(
            x, ntau1 + ntau2, axis, method, weights, reduce_axes, omega, n0, backend
        )

    reduced = {a % ndim for a in reduce_axes}
    out = None
    for index in np.ndindex(*[small.shape[d] for d in loop_axes]):
        where = dict(zip(loop_axes, index))
        y = sample(
            _take(x, where, ndim),
            big + _take(small, where, ndim),
            axis,
            method,
            _take(weights, where, ndim),
            reduce_axes,
            omega,
            _take(n0, where, ndim),
            backend,
        )
        if out is None:
            shape = list(y.shape)
            for d in loop_axes:
                if d not in reduced:
                    shape[d] = small.shape[d]
            out = np.zeros(shape, y.dtype)
        sel = [slice(None)] * ndim
        for d, i in where.items():
            sel[d] = slice(0, 1) if d in reduced else slice(i, i + 1)
        out[tuple(sel)] += y
    return out
