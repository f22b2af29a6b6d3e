"""
Library defaults and option records of the beamformers.

The defaults are stored in :data:`DEFAULTS`, a :class:`Config` object which can be
updated globally::

    echobeam.config.DEFAULTS.merge(dict(interpolation="lanczos3"))

Each beamformer validates its options through a record (:class:`DasOptions`,
:class:`AdjointOptions`, ...). A field left to None takes the current default.

"""

import collections.abc
import copy
import numbers
import pprint

import numpy as np

from . import settings as s
from .helpers import parse_enum_constant
from .sampling import Backend, Interpolation

__all__ = [
    "Config",
    "DEFAULTS",
    "DasOptions",
    "EikonalOptions",
    "AdjointOptions",
    "MigrationOptions",
]


class Config(dict):
    """
    Configuration object

    A dictionary object that shows its values by alphabetical order.

    Notes
    -----
    Adapted from matplotlib.RcParams (BSD License)

    """

    def __repr__(self):
        class_name = self.__class__.__name__
        indent = len(class_name) + 1
        repr_split = pprint.pformat(dict(self), indent=1, width=80 - indent).split("\n")
        repr_indented = ("\n" + " " * indent).join(repr_split)
        return "{0}({1})".format(class_name, repr_indented)

    def __str__(self):
        return "\n".join("{0}: {1}".format(k, v) for k, v in sorted(self.items()))

    def copy(self):
        """
        Returns a deep copy of the object.
        """
        return copy.deepcopy(self)

    def merge(self, conf):
        """
        Merge the dict-like parameter into the current object.
        This is a recursive update.

        Parameters
        ----------
        conf : dict or None
            Dictionary or Config object. If None, do nothing.

        Notes
        -----
        Adapted from `configobj <https://github.com/DiffSK/configobj/>`_, license BSD 3-clause
        """
        if conf is None:
            return self
        recursive_dict_merge(self, conf)
        return self


def recursive_dict_merge(base_dict, top_dict):
    """
    Merge `top_dict` to `base_dict`. This is a recursive version of::

    base_dict.update(top_dict)
    """
    for key, val in list(top_dict.items()):
        if (
            key in base_dict
            and isinstance(base_dict[key], collections.abc.Mapping)
            and isinstance(val, collections.abc.Mapping)
        ):
            recursive_dict_merge(base_dict[key], val)
        else:
            base_dict[key] = val


DEFAULTS = Config(
    interpolation="cubic",
    fmod=0.0,
    keep_tx=False,
    keep_rx=False,
    block_size=None,
    backend="numpy",
    numthreads=None,
    fthresh=-np.inf,
    jacobian=True,
    eikonal=dict(interpolant="cubic"),
)


def _default(value, key):
    if value is None:
        return DEFAULTS[key]
    return value


def _check_bool(value, name):
    if not isinstance(value, (bool, np.bool_)):
        raise ValueError("'{}' must be a boolean (current: {!r})".format(name, value))
    return bool(value)


def _check_positive_int(value, name):
    if value is None:
        return None
    if not isinstance(value, numbers.Integral) or value < 1:
        raise ValueError(
            "'{}' must be a positive integer (current: {!r})".format(name, value)
        )
    return int(value)


def _check_real(value, name):
    if not isinstance(value, numbers.Real) or np.isnan(value):
        raise ValueError("'{}' must be a real number (current: {!r})".format(name, value))
    return float(value)


class _OptionRecord:
    __slots__ = ()

    @classmethod
    def _fields(cls):
        fields = []
        for klass in reversed(cls.__mro__):
            fields.extend(getattr(klass, "__slots__", ()))
        return fields

    @classmethod
    def from_call(cls, options, kwargs):
        """
        Return ``options`` or a new record built from ``kwargs``; giving both is an error.
        """
        if options is None:
            return cls(**kwargs)
        if kwargs:
            raise TypeError(
                "give either 'options' or keyword arguments, not both (got {})".format(
                    sorted(kwargs)
                )
            )
        if not isinstance(options, cls):
            raise TypeError(
                "'options' must be a {} (current: {})".format(
                    cls.__name__, type(options).__name__
                )
            )
        return options

    def as_dict(self):
        return {field: getattr(self, field) for field in self._fields()}

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        fields = ", ".join(
            "{}={!r}".format(field, getattr(self, field)) for field in self._fields()
        )
        return "{}({})".format(self.__class__.__name__, fields)


class DasOptions(_OptionRecord):
    """
    Options of the time-domain delay-and-sum beamformers.

    Parameters
    ----------
    interpolation : Interpolation or str
        Default: 'cubic'
    fmod : float
        Modulation frequency of down-mixed data (Hz). Default: 0.
    keep_tx, keep_rx : bool
        Keep the transmit (receive) axis in the output instead of summing over it.
    block_size : int or None
        Number of transmits per block. Default: bounded by ``settings.MAX_BLOCK_BYTES``.
    backend : Backend or str
        Execution backend of the sampling kernel. Default: 'numpy'
    numthreads : int or None
        Number of concurrent blocks. Default: ``settings.NUMTHREADS``.
    """

    __slots__ = (
        "interpolation",
        "fmod",
        "keep_tx",
        "keep_rx",
        "block_size",
        "backend",
        "numthreads",
    )

    def __init__(
        self,
        interpolation=None,
        fmod=None,
        keep_tx=None,
        keep_rx=None,
        block_size=None,
        backend=None,
        numthreads=None,
    ):
        self.interpolation = parse_enum_constant(
            _default(interpolation, "interpolation"), Interpolation
        )
        self.fmod = _check_real(_default(fmod, "fmod"), "fmod")
        self.keep_tx = _check_bool(_default(keep_tx, "keep_tx"), "keep_tx")
        self.keep_rx = _check_bool(_default(keep_rx, "keep_rx"), "keep_rx")
        self.block_size = _check_positive_int(
            _default(block_size, "block_size"), "block_size"
        )
        self.backend = parse_enum_constant(_default(backend, "backend"), Backend)
        numthreads = _check_positive_int(
            _default(numthreads, "numthreads"), "numthreads"
        )
        self.numthreads = s.NUMTHREADS if numthreads is None else numthreads


class EikonalOptions(DasOptions):
    """
    Options of the eikonal beamformer: :class:`DasOptions` plus the method of the
    travel-time interpolant ('linear' or 'cubic').
    """

    __slots__ = ("interpolant",)

    def __init__(self, interpolant=None, **kwargs):
        super().__init__(**kwargs)
        interpolant = interpolant or DEFAULTS["eikonal"]["interpolant"]
        if interpolant not in ("linear", "cubic"):
            raise ValueError(
                "'interpolant' must be 'linear' or 'cubic' (current: {!r})".format(
                    interpolant
                )
            )
        self.interpolant = interpolant


class AdjointOptions(_OptionRecord):
    """
    Options of the frequency-domain adjoint beamformer.

    Parameters
    ----------
    fmod : float
    nfft : int or None
        FFT length. Default: number of time samples.
    fthresh : float
        Frequencies whose peak power is below ``fthresh`` dB of the maximum are skipped.
        Default: -inf (all frequencies).
    keep_tx, keep_rx : bool
    block_size : int or None
        Number of frequencies per block.
    numthreads : int or None
    """

    __slots__ = (
        "fmod",
        "nfft",
        "fthresh",
        "keep_tx",
        "keep_rx",
        "block_size",
        "numthreads",
    )

    def __init__(
        self,
        fmod=None,
        nfft=None,
        fthresh=None,
        keep_tx=None,
        keep_rx=None,
        block_size=None,
        numthreads=None,
    ):
        self.fmod = _check_real(_default(fmod, "fmod"), "fmod")
        self.nfft = _check_positive_int(nfft, "nfft")
        self.fthresh = _check_real(_default(fthresh, "fthresh"), "fthresh")
        if self.fthresh > 0:
            raise ValueError("'fthresh' must be non-positive (dB)")
        self.keep_tx = _check_bool(_default(keep_tx, "keep_tx"), "keep_tx")
        self.keep_rx = _check_bool(_default(keep_rx, "keep_rx"), "keep_rx")
        self.block_size = _check_positive_int(
            _default(block_size, "block_size"), "block_size"
        )
        numthreads = _check_positive_int(
            _default(numthreads, "numthreads"), "numthreads"
        )
        self.numthreads = s.NUMTHREADS if numthreads is None else numthreads


class MigrationOptions(_OptionRecord):
    """
    Options of the plane-wave f-k migration.

    Parameters
    ----------
    fmod : float
    nfft : tuple or None
        FFT lengths ``(F, K)`` along time and along the array. A None entry takes
        the data length. Default: ``(T, N)``.
    keep_tx : bool
    block_size : int or None
        Number of transmits per block.
    interpolation : Interpolation or str
        Kernel used to resample the temporal frequencies.
    jacobian : bool
        Apply the Jacobian of the frequency mapping. Default: True
    backend : Backend or str
    """

    __slots__ = (
        "fmod",
        "nfft",
        "keep_tx",
        "block_size",
        "interpolation",
        "jacobian",
        "backend",
    )

    def __init__(
        self,
        fmod=None,
        nfft=None,
        keep_tx=None,
        block_size=None,
        interpolation=None,
        jacobian=None,
        backend=None,
    ):
        self.fmod = _check_real(_default(fmod, "fmod"), "fmod")
        if nfft is None:
            nfft = (None, None)
        try:
            nfft_t, nfft_x = nfft
        except (TypeError, ValueError):
            raise ValueError("'nfft' must be a pair (F, K) (current: {!r})".format(nfft))
        self.nfft = (
            _check_positive_int(nfft_t, "nfft[0]"),
            _check_positive_int(nfft_x, "nfft[1]"),
        )
        self.keep_tx = _check_bool(_default(keep_tx, "keep_tx"), "keep_tx")
        self.block_size = _check_positive_int(
            _default(block_size, "block_size"), "block_size"
        )
        self.interpolation = parse_enum_constant(
            _default(interpolation, "interpolation"), Interpolation
        )
        self.jacobian = _check_bool(_default(jacobian, "jacobian"), "jacobian")
        self.backend = parse_enum_constant(_default(backend, "backend"), Backend)
