"""
Defines core objects of echobeam: channel data, and the descriptions of the array
and of the transmit sequence.

Channel data
============

:class:`ChannelData` holds a data array whose axes have roles given by an
:class:`AxisOrder`: time (``"T"``), receive element (``"N"``), transmit event
(``"M"``), and any number of free axes (frames, ...). The start time ``t0`` is
stored with one axis per data axis; it is a singleton along the time and receive
axes and may vary along the other axes.

Channel data objects are never modified: every method returns a new object.

"""

import enum
import logging
import math

import numpy as np

from . import sampling
from . import settings as s
from .exceptions import (
    InsufficientPrecisionWarning,
    InvalidDimension,
    InvalidShape,
    NumericalDegradationWarning,
)
from .helpers import chunk_array, parse_enum_constant, warn_and_log
from .sampling import Backend, Interpolation
from .signal import Hilbert
from .ut import make_timevect

__all__ = [
    "AxisOrder",
    "ChannelData",
    "Aperture",
    "SequenceKind",
    "Sequence",
]

logger = logging.getLogger(__name__)

TIME = "T"
RECEIVE = "N"
TRANSMIT = "M"


class AxisOrder:
    """
    Immutable map from the axes of an array to their roles.

    The labels ``"T"`` (time), ``"N"`` (receive) and ``"M"`` (transmit) appear
    exactly once. Any other label names a free axis.

    Parameters
    ----------
    labels : str or sequence of str
        ``"TNM"`` is read as ``("T", "N", "M")``.

    Examples
    --------
    >>> AxisOrder("TNM").permute("NTM").time_axis
    1
    >>> AxisOrder("TNM").expand(4)
    AxisOrder('T', 'N', 'M', 'F0')

    """

    __slots__ = ("_labels",)

    def __init__(self, labels="TNM"):
        if isinstance(labels, AxisOrder):
            labels = labels.labels
        labels = tuple(labels)
        if not all(isinstance(label, str) and label for label in labels):
            raise ValueError("Axis labels must be non-empty strings: {}".format(labels))
        if len(set(labels)) != len(labels):
            raise ValueError("Duplicate axis labels: {}".format(labels))
        for role in (TIME, RECEIVE, TRANSMIT):
            if role not in labels:
                raise ValueError("Missing axis '{}' in {}".format(role, labels))
        self._labels = labels

    @property
    def labels(self):
        return self._labels

    def __len__(self):
        return len(self._labels)

    def __iter__(self):
        return iter(self._labels)

    def __getitem__(self, axis):
        return self._labels[axis]

    def __eq__(self, other):
        if isinstance(other, AxisOrder):
            return self._labels == other._labels
        return NotImplemented

    def __hash__(self):
        return hash(self._labels)

    def __repr__(self):
        return "AxisOrder({})".format(", ".join(repr(x) for x in self._labels))

    def index(self, label):
        try:
            return self._labels.index(label)
        except ValueError:
            raise ValueError("No axis '{}' in {}".format(label, self._labels)) from None

    @property
    def time_axis(self):
        return self._labels.index(TIME)

    @property
    def receive_axis(self):
        return self._labels.index(RECEIVE)

    @property
    def transmit_axis(self):
        return self._labels.index(TRANSMIT)

    @property
    def free_labels(self):
        return tuple(x for x in self._labels if x not in (TIME, RECEIVE, TRANSMIT))

    @property
    def free_axes(self):
        return tuple(self._labels.index(x) for x in self.free_labels)

    def permute(self, labels):
        """Return a new order with the same labels in the order ``labels``."""
        new = AxisOrder(labels)
        if set(new.labels) != set(self._labels) or len(new) != len(self):
            raise ValueError(
                "{} is not a permutation of {}".format(new.labels, self._labels)
            )
        return new

    def expand(self, ndim):
        """Return a new order with free axes ``F0, F1, ...`` appended up to ``ndim`` axes."""
        labels = list(self._labels)
        i = 0
        while len(labels) < ndim:
            label = "F{}".format(i)
            if label not in labels:
                labels.append(label)
            i += 1
        return AxisOrder(labels)

    def canonical(self):
        """Return the order ``T, N, M`` followed by the free axes."""
        return AxisOrder((TIME, RECEIVE, TRANSMIT) + self.free_labels)


class ChannelData:
    """
    Sampled pulse-echo data.

    Parameters
    ----------
    data : ndarray
        Real or complex data. Missing trailing axes are added as singletons.
    fs : float
        Sampling frequency (Hz).
    t0 : float or ndarray
        Time of the first sample (s). Singleton along the time and receive axes,
        missing trailing axes are added as singletons. Default: 0.
    order : AxisOrder or str
        Role of each axis. Default: 'TNM'

    Attributes
    ----------
    data : ndarray
        Read-only.
    t0 : ndarray
        Read-only, ``t0.ndim == data.ndim``.
    fs : float
    order : AxisOrder

    """

    __slots__ = ("_data", "_fs", "_t0", "_order")

    def __init__(self, data, fs, t0=0.0, order="TNM"):
        data = np.asarray(data)
        order = AxisOrder(order)
        if data.ndim == 0:
            raise InvalidDimension.message_auto("data", "at least 1", 0)
        if data.ndim > len(order):
            order = order.expand(data.ndim)
        data = data.reshape(data.shape + (1,) * (len(order) - data.ndim))

        fs = float(fs)
        if not fs > 0.0:
            raise ValueError("'fs' must be positive (current: {})".format(fs))

        t0 = np.asarray(t0, dtype=s.FLOAT)
        if t0.ndim > data.ndim:
            raise InvalidDimension.message_auto(
                "t0", "at most {}".format(data.ndim), t0.ndim
            )
        t0 = t0.reshape(t0.shape + (1,) * (data.ndim - t0.ndim))
        for axis in (order.time_axis, order.receive_axis):
            if t0.shape[axis] != 1:
                raise InvalidShape(
                    "'t0' must be a singleton along the time and receive axes "
                    "(current shape: {}, order: {})".format(t0.shape, order.labels)
                )
        for d in range(data.ndim):
            if t0.shape[d] not in (1, data.shape[d]):
                raise InvalidShape.broadcast_mismatch(
                    "t0", "data", d, t0.shape[d], data.shape[d]
                )

        data = data.view()
        data.flags.writeable = False
        t0 = t0.copy()
        t0.flags.writeable = False

        self._data = data
        self._fs = fs
        self._t0 = t0
        self._order = order

    def __repr__(self):
        return "<{}: shape {} ({}), fs={:.2f} MHz, {}>".format(
            self.__class__.__name__,
            self.shape,
            "".join(self._order.labels),
            self._fs * 1e-6,
            self.dtype,
        )

    def replace(self, data=None, fs=None, t0=None, order=None):
        """Return a new object with some attributes replaced."""
        return self.__class__(
            self._data if data is None else data,
            self._fs if fs is None else fs,
            self._t0 if t0 is None else t0,
            self._order if order is None else order,
        )

    @property
    def data(self):
        return self._data

    @property
    def fs(self):
        return self._fs

    @property
    def t0(self):
        return self._t0

    @property
    def order(self):
        return self._order

    @property
    def shape(self):
        return self._data.shape

    @property
    def ndim(self):
        return self._data.ndim

    @property
    def dtype(self):
        return self._data.dtype

    @property
    def numsamples(self):
        return self._data.shape[self._order.time_axis]

    @property
    def numrx(self):
        return self._data.shape[self._order.receive_axis]

    @property
    def numtx(self):
        return self._data.shape[self._order.transmit_axis]

    @property
    def free_shape(self):
        return tuple(self._data.shape[d] for d in self._order.free_axes)

    def _along_time(self, vect):
        shape = [1] * self.ndim
        shape[self._order.time_axis] = len(vect)
        return np.reshape(vect, shape)

    @property
    def time(self):
        """Time of each sample, broadcastable against the data."""
        return self._t0 + self._along_time(make_timevect(self.numsamples, 1 / self._fs))

    def _axis(self, axis):
        if isinstance(axis, str):
            return self._order.index(axis)
        return axis % self.ndim

    # --------------------------------------------------------------------------
    # Axes

    def permute(self, order):
        """Return the data with its axes permuted to ``order``."""
        order = self._order.permute(order)
        axes = [self._order.index(label) for label in order]
        return self.__class__(
            self._data.transpose(axes), self._fs, self._t0.transpose(axes), order
        )

    def canonical(self):
        """Return the data with the axes ``T, N, M, free...``."""
        if self._order == self._order.canonical():
            return self
        return self.permute(self._order.canonical())

    def sub(self, index, axis=TRANSMIT):
        """
        Return a subset of the data along an axis. The axis is kept.

        Parameters
        ----------
        index : int, slice or array of int
        axis : str or int
            Any axis but the time axis.
        """
        axis = self._axis(axis)
        if axis == self._order.time_axis:
            raise ValueError("use zeropad() or sample() to change the time axis")
        index = np.atleast_1d(np.arange(self.shape[axis])[index])
        data = np.take(self._data, index, axis=axis)
        t0 = self._t0
        if t0.shape[axis] > 1:
            t0 = np.take(t0, index, axis=axis)
        return self.replace(data=data, t0=t0)

    def splice(self, axis, block_size):
        """Yield consecutive blocks of at most ``block_size`` along ``axis``."""
        axis = self._axis(axis)
        for sel in chunk_array((self.shape[axis],), block_size):
            yield self.sub(sel[0], axis)

    @classmethod
    def join(cls, chds, axis):
        """Concatenate channel data along an axis other than time."""
        chds = list(chds)
        first = chds[0]
        for chd in chds[1:]:
            if chd.fs != first.fs or chd.order != first.order:
                raise ValueError("Channel data must share 'fs' and 'order' to be joined")
        axis = first._axis(axis)
        if axis == first.order.time_axis:
            raise ValueError("Cannot join along the time axis")

        t0_shape = [
            max(chd.t0.shape[d] for chd in chds) for d in range(first.ndim)
        ]
        t0s = []
        for chd in chds:
            t0_shape[axis] = chd.shape[axis]
            t0s.append(np.broadcast_to(chd.t0, t0_shape))
        data = np.concatenate([chd.data for chd in chds], axis=axis)
        t0 = np.concatenate(t0s, axis=axis)
        if np.all(t0 == t0.flat[0]):
            t0 = t0.flat[0]
        return cls(data, first.fs, t0, first.order)

    # --------------------------------------------------------------------------
    # Time axis

    def zeropad(self, before=0, after=0):
        """Add zeros before and after the data along the time axis; ``t0`` moves accordingly."""
        if before < 0 or after < 0:
            raise ValueError("Padding must be non-negative")
        pad = [(0, 0)] * self.ndim
        pad[self._order.time_axis] = (int(before), int(after))
        return self.replace(
            data=np.pad(self._data, pad), t0=self._t0 - before / self._fs
        )

    def downsample(self, ratio):
        """Keep one sample out of ``ratio``."""
        if int(ratio) != ratio or ratio < 1:
            raise ValueError("'ratio' must be a positive integer")
        sel = [slice(None)] * self.ndim
        sel[self._order.time_axis] = slice(None, None, int(ratio))
        return self.replace(data=self._data[tuple(sel)], fs=self._fs / ratio)

    def downmix(self, fc):
        """Shift the spectrum by ``-fc`` (Hz). The result is complex."""
        return self.replace(data=self._data * np.exp(-2j * np.pi * fc * self.time))

    def hilbert(self, n=None):
        """
        Return the analytic signal.

        Parameters
        ----------
        n : int or None
            Number of Fourier components, hence of output samples. Default: the
            number of samples.
        """
        return self.apply_filter(Hilbert(n))

    def apply_filter(self, filt):
        """Apply a filter of :mod:`echobeam.signal` along the time axis."""
        return self.replace(data=filt(self._data, axis=self._order.time_axis))

    def fftaxis(self, nfft=None):
        """Frequencies of the discrete Fourier transform along time, broadcastable against the data."""
        nfft = self.numsamples if nfft is None else nfft
        return self._along_time(np.fft.fftfreq(nfft, 1 / self._fs))

    def estimate_fc(self):
        """Power-weighted mean absolute frequency of the data (Hz)."""
        taxis = self._order.time_axis
        power = np.abs(np.fft.fft(self._data, axis=taxis)) ** 2
        other_axes = tuple(d for d in range(self.ndim) if d != taxis)
        power = power.sum(axis=other_axes)
        freqs = np.abs(np.fft.fftfreq(self.numsamples, 1 / self._fs))
        return float(np.sum(freqs * power) / np.sum(power))

    def rectify_t0(self, method=Interpolation.cubic, t0=None, backend=Backend.numpy):
        """
        Resample the data on a time axis common to all transmits and frames.

        Parameters
        ----------
        method : Interpolation or str
        t0 : float or None
            New start time. Default: the earliest start time. The new record ends at
            the latest end time.

        Returns
        -------
        ChannelData
            With a scalar ``t0``.
        """
        t0_new = float(np.min(self._t0)) if t0 is None else float(t0)
        if np.all(self._t0 == t0_new):
            return self.replace(t0=t0_new)

        end = float(np.max(self._t0)) + (self.numsamples - 1) / self._fs
        numsamples = int(math.ceil(round((end - t0_new) * self._fs, 6))) + 1
        warn_and_log(
            "Channel data interpolated on a common time axis ({} samples)".format(
                numsamples
            ),
            NumericalDegradationWarning,
            logger,
        )
        time = t0_new + self._along_time(make_timevect(numsamples, 1 / self._fs))
        data = self.sample(time, method, backend=backend)
        return self.replace(data=data, t0=t0_new)

    def align_int(self, method=Interpolation.cubic, backend=Backend.numpy):
        """Resample the data so that ``t0`` is a whole number of sampling periods."""
        t0_new = np.round(self._t0 * self._fs) / self._fs
        if np.all(t0_new == self._t0):
            return self
        time = self.replace(t0=t0_new).time
        return self.replace(data=self.sample(time, method, backend=backend), t0=t0_new)

    # --------------------------------------------------------------------------
    # Sampling

    def _output_axes(self, reduce_axes, out_ndim):
        offset = out_ndim - self.ndim
        axes = []
        for axis in reduce_axes:
            if isinstance(axis, str):
                axes.append(offset + self._order.index(axis))
            else:
                axes.append(axis)
        return axes

    def _padded_for(self, method, lo, hi):
        """
        Data ready for ``method`` when sampled between the fractional indices ``lo`` and
        ``hi``, and the number of samples added at its start.
        """
        if method is not Interpolation.freq:
            return self._data, 0
        if self.dtype == np.float16:
            warn_and_log(
                "Half-precision data is not accurate enough for 'freq' interpolation",
                InsufficientPrecisionWarning,
                logger,
            )
        # One guard sample at the end; delays beyond the observed range may still alias.
        if np.isfinite(lo) and np.isfinite(hi):
            before = max(0, -math.floor(lo))
            after = max(0, math.ceil(hi) - (self.numsamples - 1)) + 1
        else:
            before, after = 0, 1
        pad = [(0, 0)] * self.ndim
        pad[self._order.time_axis] = (before, after)
        return np.pad(self._data, pad), before

    @staticmethod
    def _bounds(ntau):
        finite = ntau[np.isfinite(ntau)]
        if finite.size == 0:
            return np.nan, np.nan
        return float(finite.min()), float(finite.max())

    def sample(
        self,
        tau,
        method=Interpolation.cubic,
        weights=1.0,
        reduce_axes=(),
        fmod=0.0,
        backend=Backend.numpy,
    ):
        """
        Sample the data at the times ``tau``.

        Parameters
        ----------
        tau : ndarray
            Sampling times (s). ``tau.ndim >= data.ndim``; the last axes are aligned
            with the axes of the data. The size along the time axis is the number of
            output samples; extra leading axes are free (pixels).
        method : Interpolation or str
            Default: 'cubic'
        weights : ndarray or float
            Multiplied with the samples before reduction.
        reduce_axes : sequence
            Axes summed after weighting, given by label ('N', 'M', ...) or by axis of
            the output. They are kept as singletons.
        fmod : float
            Modulation frequency of down-mixed data (Hz).
        backend : Backend or str

        Returns
        -------
        ndarray
            Cf. :func:`echobeam.sampling.sample`.

        """
        method = parse_enum_constant(method, Interpolation)
        tau = np.asarray(tau, dtype=s.FLOAT)
        ntau = (tau - self._t0) * self._fs
        data, before = self._padded_for(method, *self._bounds(ntau))
        return sampling.sample(
            data,
            ntau + before,
            self._order.time_axis,
            method,
            weights,
            self._output_axes(reduce_axes, ntau.ndim),
            fmod / self._fs,
            self._t0 * self._fs - before,
            backend,
        )

    def sample2sep(
        self,
        tau1,
        tau2,
        method=Interpolation.cubic,
        weights=1.0,
        reduce_axes=(),
        fmod=0.0,
        backend=Backend.numpy,
    ):
        """
        Same as ``sample(tau1 + tau2, ...)`` without forming ``tau1 + tau2``.

        Cf. :func:`echobeam.sampling.sample2sep`.
        """
        method = parse_enum_constant(method, Interpolation)
        tau1 = np.asarray(tau1, dtype=s.FLOAT)
        tau2 = np.asarray(tau2, dtype=s.FLOAT)
        size1 = math.prod(np.broadcast_shapes(tau1.shape, self._t0.shape))
        size2 = math.prod(np.broadcast_shapes(tau2.shape, self._t0.shape))
        # t0 goes with the delays that stay the smallest once it is subtracted
        if size1 <= size2:
            ntau1 = (tau1 - self._t0) * self._fs
            ntau2 = tau2 * self._fs
        else:
            ntau1 = tau1 * self._fs
            ntau2 = (tau2 - self._t0) * self._fs
        lo1, hi1 = self._bounds(ntau1)
        lo2, hi2 = self._bounds(ntau2)
        data, before = self._padded_for(method, lo1 + lo2, hi1 + hi2)
        out_ndim = max(ntau1.ndim, ntau2.ndim)
        return sampling.sample2sep(
            data,
            ntau1 + before,
            ntau2,
            self._order.time_axis,
            method,
            weights,
            self._output_axes(reduce_axes, out_ndim),
            fmod / self._fs,
            self._t0 * self._fs - before,
            backend,
        )


class Aperture:
    """
    Positions and normals of the elements of an array.

    Parameters
    ----------
    positions : ndarray
        Shape: (numelements, 3)
    normals : ndarray or None
        Unit normals of the elements. Shape: (numelements, 3). Default: (0, 0, 1).

    """

    __slots__ = ("positions", "normals")

    def __init__(self, positions, normals=None):
        positions = np.atleast_2d(np.asarray(positions, dtype=s.FLOAT))
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise InvalidShape.message_auto("positions", "(numelements, 3)", positions.shape)
        if normals is None:
            normals = np.zeros_like(positions)
            normals[:, 2] = 1.0
        normals = np.atleast_2d(np.asarray(normals, dtype=s.FLOAT))
        if normals.shape != positions.shape:
            raise InvalidShape.message_auto("normals", positions.shape, normals.shape)
        self.positions = positions
        self.normals = normals / np.linalg.norm(normals, axis=-1, keepdims=True)

    @classmethod
    def linear(cls, numelements, pitch, centre=(0.0, 0.0, 0.0)):
        """Uniform linear array along x, centred on ``centre``."""
        positions = np.zeros((numelements, 3), s.FLOAT)
        positions[:, 0] = (np.arange(numelements) - (numelements - 1) / 2) * pitch
        positions += np.asarray(centre, dtype=s.FLOAT)
        return cls(positions)

    def __repr__(self):
        return "<{}: {} elements>".format(self.__class__.__name__, self.numelements)

    def __len__(self):
        return self.numelements

    @property
    def numelements(self):
        return self.positions.shape[0]

    @property
    def x(self):
        return self.positions[:, 0]

    @property
    def z(self):
        return self.positions[:, 2]

    @property
    def angles(self):
        """Angle of the normals from the z-axis towards the x-axis (rad)."""
        return np.arctan2(self.normals[:, 0], self.normals[:, 2])

    def is_uniform_linear(self, rtol=1e-6):
        """True if the elements are regularly spaced along increasing x."""
        if self.numelements < 2:
            return False
        steps = np.diff(self.positions, axis=0)
        pitch = steps[0, 0]
        atol = rtol * abs(pitch)
        return bool(
            pitch > 0.0
            and np.allclose(steps[:, 0], pitch, rtol=0.0, atol=atol)
            and np.allclose(steps[:, 1:], 0.0, rtol=0.0, atol=atol)
        )

    @property
    def pitch(self):
        """Distance between the first two elements."""
        if self.numelements < 2:
            return None
        return float(np.linalg.norm(self.positions[1] - self.positions[0]))


class SequenceKind(enum.Enum):
    fsa = 0
    pw = 1
    vs = 2


class Sequence:
    """
    Transmit sequence.

    The transmit delays are such as time 0 is when the wave passes the focal point
    (``vs``), the origin (``pw``), or when the element fires (``fsa``).

    Parameters
    ----------
    kind : SequenceKind or str
    focus : ndarray or None
        ``vs``: virtual source positions. ``pw``: unit propagation directions.
        Shape: (numpulses, 3). Not used for ``fsa``.
    c0 : float
        Sound speed used to derive the delays (m/s).
    delays : ndarray or None
        Transmit delays (s), shape (numelements, numpulses). Default: derived from
        the geometry.
    apodization : ndarray or None
        Transmit weights, shape (numelements, numpulses). Default: identity for
        ``fsa``, ones otherwise.

    """

    __slots__ = ("kind", "focus", "c0", "_delays", "_apodization")

    def __init__(self, kind, focus=None, c0=1540.0, delays=None, apodization=None):
        self.kind = parse_enum_constant(kind, SequenceKind)
        if self.kind is not SequenceKind.fsa:
            if focus is None:
                raise ValueError("'focus' is required for a '{}' sequence".format(self.kind.name))
            focus = np.atleast_2d(np.asarray(focus, dtype=s.FLOAT))
            if focus.ndim != 2 or focus.shape[1] != 3:
                raise InvalidShape.message_auto("focus", "(numpulses, 3)", focus.shape)
            if self.kind is SequenceKind.pw:
                focus = focus / np.linalg.norm(focus, axis=-1, keepdims=True)
        self.focus = focus
        self.c0 = float(c0)
        self._delays = None if delays is None else np.asarray(delays, dtype=s.FLOAT)
        self._apodization = None if apodization is None else np.asarray(apodization)

    @classmethod
    def fsa(cls, c0=1540.0):
        return cls(SequenceKind.fsa, c0=c0)

    @classmethod
    def plane_waves(cls, angles, c0=1540.0):
        """Plane waves steered by ``angles`` (rad) from the z-axis towards the x-axis."""
        angles = np.atleast_1d(np.asarray(angles, dtype=s.FLOAT))
        directions = np.stack(
            [np.sin(angles), np.zeros_like(angles), np.cos(angles)], axis=-1
        )
        return cls(SequenceKind.pw, directions, c0)

    @classmethod
    def virtual_sources(cls, foci, c0=1540.0):
        return cls(SequenceKind.vs, foci, c0)

    def __repr__(self):
        return "<{}: {}>".format(self.__class__.__name__, self.kind.name)

    @property
    def angles(self):
        """Steering angles of plane waves (rad)."""
        if self.kind is not SequenceKind.pw:
            raise ValueError("Only plane wave sequences have steering angles")
        return np.arctan2(self.focus[:, 0], self.focus[:, 2])

    def numpulses(self, tx):
        if self._delays is not None:
            return self._delays.shape[1]
        if self.kind is SequenceKind.fsa:
            return tx.numelements
        return self.focus.shape[0]

    def delays(self, tx, c0=None):
        """
        Transmit delay of each element for each pulse (s).

        Parameters
        ----------
        tx : Aperture
        c0 : float or None
            Sound speed. Default: ``self.c0``.

        Returns
        -------
        ndarray
            Shape: (numelements, numpulses)
        """
        if self._delays is not None:
            expected_shape = (tx.numelements, self._delays.shape[1])
            if self._delays.shape != expected_shape:
                raise InvalidShape.message_auto("delays", expected_shape, self._delays.shape)
            return self._delays
        c0 = self.c0 if c0 is None else float(c0)
        if self.kind is SequenceKind.fsa:
            return np.zeros((tx.numelements, tx.numelements), s.FLOAT)
        if self.kind is SequenceKind.pw:
            return tx.positions @ self.focus.T / c0
        diff = self.focus[np.newaxis, :, :] - tx.positions[:, np.newaxis, :]
        # negative for a focus in front of the element, along its normal
        side = np.einsum("mk,mvk->mv", tx.normals, diff)
        return -np.sign(side) * np.linalg.norm(diff, axis=-1) / c0

    def apodization(self, tx):
        """
        Transmit weight of each element for each pulse. Shape: (numelements, numpulses)
        """
        if self._apodization is not None:
            return self._apodization
        if self.kind is SequenceKind.fsa:
            return np.eye(tx.numelements)
        return np.ones((tx.numelements, self.numpulses(tx)))
