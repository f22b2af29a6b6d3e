"""
Toolbox of functions for ultrasonic signals.
"""
# Only functions that do not require any echobeam-specific logic should be put here.

import numpy as np


def decibel(arr, reference=None, neginf_value=-1000.0, return_reference=False):
    """
    Return 20*log10(abs(arr) / reference)

    If reference is None, use:

        reference := max(abs(arr))

    Parameters
    ----------
    arr : ndarray
        Values to convert in dB.
    reference : float or None
        Reference value for 0 dB. Default: None
    neginf_value : float or None
        If not None, convert -inf dB values to this parameter. If None, -inf
        dB values are not changed.
    return_reference : bool
        Default: False.

    Returns
    -------
    arr_db
        Array in decibel.
    reference: float
        Returned only if return_reference is true.

    """
    arr_abs = np.abs(np.atleast_1d(arr))
    scalar_input = np.ndim(arr) == 0

    if reference is None:
        reference = np.nanmax(arr_abs)
    elif reference <= 0.0:
        raise ValueError("'reference' must be positive")

    # log10(0.0) is expected
    with np.errstate(divide="ignore"):
        arr_db = 20 * np.log10(arr_abs / reference)

    if neginf_value is not None:
        arr_db[np.isneginf(arr_db)] = neginf_value

    if scalar_input:
        arr_db = arr_db.reshape(())

    if return_reference:
        return arr_db, reference
    return arr_db


def make_timevect(num, step, start=0.0, dtype=None):
    """
    Return the times of ``num`` samples taken every ``step`` from ``start``.

    Unlike ``numpy.arange(start, start + num * step, step)``, the number of samples
    does not depend on rounding errors.

    Parameters
    ----------
    num : int
    step : float
        Sampling period.
    start : float
        Time of the first sample. Default: 0.
    dtype : numpy.dtype or None
        Default: inferred from ``start`` and ``step``.

    Returns
    -------
    ndarray
        ``start + n * step`` for ``n`` in ``0 .. num - 1``

    Examples
    --------
    >>> make_timevect(4, 0.5, start=1.0)
    array([1. , 1.5, 2. , 2.5])

    """
    if not isinstance(num, (int, np.integer)):
        raise TypeError("'num' must be an integer (current: {})".format(type(num)))
    if num < 0:
        raise ValueError("'num' must be non-negative (current: {})".format(num))
    start = float(start)
    step = float(step)
    if dtype is None:
        dtype = np.result_type(start, step)
    return (start + np.arange(num) * step).astype(dtype, copy=False)
