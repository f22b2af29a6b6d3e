"""
Helper functions
"""

import logging
import math
import time
import warnings
from contextlib import contextmanager

from . import settings as s
from .exceptions import InvalidDimension, InvalidShape, NotAnArray


def parse_enum_constant(enum_constant_or_name, enum_type):
    """
    Return the enumerated constant corresponding to 'enum_constant_or_name', which
    can be either this constant or a its name (string).
    """
    if isinstance(enum_constant_or_name, enum_type):
        return enum_constant_or_name
    else:
        try:
            return enum_type[enum_constant_or_name]
        except KeyError:
            raise ValueError(
                "Expected a constant of enum '{enum_type}', got '{x}' instead".format(
                    x=enum_constant_or_name, enum_type=enum_type
                )
            )


@contextmanager
def timeit(name="Computation", logger=None, log_level=logging.INFO):
    """
    A context manager for timing some code.

    Parameters
    ----------
    name : str
        Name of the computation
    logger : logging.Logger or None
        Logger where to write the elapsed time. If None (default), use function ``print()``
    log_level : int
        Level logger (used only if a logger is given).

    Examples
    --------
    ::

        >>> with echobeam.helpers.timeit('Simple addition'):
        ...     1 + 1
        Simple addition performed in 570.20 ns

    """
    default_timer = time.perf_counter
    tic = default_timer()
    yield
    elapsed = default_timer() - tic

    if elapsed < 1e-6:
        elapsed = elapsed * 1e9
        unit = "ns"
    elif elapsed < 1e-3:
        elapsed = elapsed * 1e6
        unit = "us"
    elif elapsed < 1:
        elapsed = elapsed * 1000
        unit = "ms"
    else:
        unit = "s"

    msg = "{name} performed in {elapsed:.2f} {unit}".format(
        name=name, elapsed=elapsed, unit=unit
    )

    if logger is None:
        print(msg)
    else:
        logger.log(log_level, msg)


def warn_and_log(message, category, logger, stacklevel=3):
    """Issue a warning and mirror it in the module logger."""
    logger.warning(message)
    warnings.warn(message, category, stacklevel=stacklevel)


def get_shape_safely(array, array_name, expected_shape=None):
    """
    Return the shape of an array.
    Raise ``NotAnArray`` if the so-called array has no attribute shape.

    If an expected is given, check that the array shape is indeed compatible. ``expected_shape`` must be a tuple
    of integers or 'None'. If 'None' is given for a dimension, this dimension is ignored.

    """
    try:
        shape = array.shape
    except AttributeError:
        raise NotAnArray(array_name)

    if expected_shape is None:
        return shape

    if len(shape) != len(expected_shape):
        raise InvalidDimension.message_auto(array_name, len(expected_shape), len(shape))
    for dim, (expected_size, current_size) in enumerate(
        zip(expected_shape, shape), start=1
    ):
        if expected_size is None:
            continue
        if expected_size != current_size:
            raise InvalidShape(
                "Array '{}' must have a size of {} (current: {}) for its dimension {}.".format(
                    array_name, expected_size, current_size, dim
                )
            )

    return shape


def chunk_array(array_shape, block_size, axis=0):
    """Yield selectors to split a array into multiple chunk.

        >>> x = np.arange(10)
        >>> for sel in chunk_array(x.shape, 3):
        ...     print(x[sel])
        [0 1 2]
        [3 4 5]
        [6 7 8]
        [9]


    Parameters
    ----------
    array_shape : tuple
        Shape of the array to split.
    block_size : int
        Number of items in each block (except the latest which might have less).
    axis : int, optional
        Split axis. Default: 0

    """
    ndim = len(array_shape)
    axis = list(range(ndim))[axis]  # works if axis is positive or negative
    length = array_shape[axis]

    numchunks = math.ceil(length / block_size)

    if axis == 0:
        for i in range(numchunks):
            yield (slice(i * block_size, (i + 1) * block_size), ...)
    elif axis == (ndim - 1):
        for i in range(numchunks):
            yield (..., slice(i * block_size, (i + 1) * block_size))
    else:
        fillers = (slice(None),) * axis
        for i in range(numchunks):
            yield (*fillers, slice(i * block_size, (i + 1) * block_size), ...)


def default_block_size(items_per_unit, itemsize=8, numthreads=1):
    """
    Number of units (transmits, frequencies) per block such as one block of
    ``items_per_unit`` values per unit stays below ``settings.MAX_BLOCK_BYTES``.

    The memory budget is shared between the threads working concurrently.

    Returns
    -------
    int
        At least 1.
    """
    budget = s.MAX_BLOCK_BYTES / max(1, numthreads)
    return max(1, int(budget // (max(1, items_per_unit) * itemsize)))


def sizeof_fmt(num, suffix="B"):
    """
    Human-readable memory size.

    Adapted from https://stackoverflow.com/a/1094933/2996578
    """
    for unit in ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"]:
        if abs(num) < 1024.0:
            return "%3.1f %s%s" % (num, unit, suffix)  # noqa
        num /= 1024.0
    return "%.1f %s%s" % (num, "Yi", suffix)  # noqa
