"""
Filters applied along the time axis of channel data.

Usage::

    filt = ButterworthBandpass(4, 2e6, 8e6, fs=chd.fs) + Hilbert()
    chd = chd.apply_filter(filt)

"""

import numpy as np
from scipy.signal import butter, filtfilt, hilbert

__all__ = [
    "Filter",
    "ButterworthBandpass",
    "ComposedFilter",
    "Hilbert",
    "NoFilter",
    "Abs",
]


class Filter:
    """
    Abstract filter.

    To implement a new filter, create a derived class and implement the following method such as:

      - ``__init__`` initialiases the filter (take as many arguments as required),
      - ``__call__(arr, axis=-1)`` filters the data along ``axis``,
      - ``__str__`` returns a description of the filter.

    Filters can be composed by using the ``+`` operator: ``(f + g)(x) == f(g(x))``.

    """

    def __add__(self, inner_filter):
        """Composition operator for Filter objects."""
        return ComposedFilter(self, inner_filter)

    def __call__(self, arr, axis=-1):
        """Apply the filter on data; to implement in derived class."""
        raise NotImplementedError

    def __str__(self):
        """Description of the filter; to implement in derived class."""
        return "Unspecified filter"


class NoFilter(Filter):
    """
    A filter that does nothing (return data unchanged).
    """

    def __call__(self, arr, axis=-1):
        return arr

    def __str__(self):
        return "No filter"


class ComposedFilter(Filter):
    """
    Composed filter.

    When called, this filter applies each of its subfilters on the data, the
    innermost first.
    """

    def __init__(self, outer_filters, inner_filters):
        self.ops = self._ops(outer_filters) + self._ops(inner_filters)

    @staticmethod
    def _ops(filt):
        try:
            return list(filt.ops)
        except AttributeError:
            return [filt]

    def __len__(self):
        return len(self.ops)

    def __call__(self, arr, axis=-1):
        out = arr
        for op in reversed(self.ops):
            out = op(out, axis=axis)
        return out

    def __str__(self):
        return "\n".join([str(op) for op in self.ops])


class ButterworthBandpass(Filter):
    """
    Butterworth bandpass filter, applied forward and backward (zero phase).

    Parameters
    ----------
    order : int
        Order of the filter
    cutoff_min, cutoff_max : float
        Cutoff frequencies in Hz.
    fs : float
        Sampling frequency of the data to filter (Hz).

    """

    def __init__(self, order, cutoff_min, cutoff_max, fs):
        nyquist = 0.5 * fs
        if not 0.0 < cutoff_min < cutoff_max < nyquist:
            raise ValueError(
                "Cutoff frequencies must satisfy 0 < cutoff_min < cutoff_max < fs/2"
            )
        self.order = order
        self.cutoff_min = float(cutoff_min)
        self.cutoff_max = float(cutoff_max)
        self.b, self.a = butter(
            order, np.array([cutoff_min, cutoff_max]) / nyquist, btype="bandpass"
        )

    def __str__(self):
        return "{} [{:.1f}, {:.1f}] MHz order {}".format(
            self.__class__.__qualname__,
            self.cutoff_min * 1e-6,
            self.cutoff_max * 1e-6,
            self.order,
        )

    def __call__(self, arr, axis=-1):
        return np.ascontiguousarray(filtfilt(self.b, self.a, arr, axis=axis))

    def __repr__(self):
        return "<{} at {}>".format(str(self), hex(id(self)))


class Hilbert(Filter):
    """
    Returns the analytical signal, i.e. ``signal + i * hilbert_signal`` where
    ``hilbert_signal`` is the Hilbert transform of ``signal``.

    Parameters
    ----------
    n : int or None
        Number of Fourier components. Default: the length of the data.
    """

    def __init__(self, n=None):
        self.n = n

    def __call__(self, arr, axis=-1):
        if np.iscomplexobj(arr):
            raise ValueError("the Hilbert transform expects real data")
        return hilbert(arr, N=self.n, axis=axis)

    def __str__(self):
        return "Hilbert transform"


class Abs(Filter):
    """
    Returns the absolute value of a signal.
    """

    def __call__(self, arr, axis=-1):
        return np.abs(arr)

    def __str__(self):
        return "Absolute value"
