"""
Stolt's f-k migration of plane wave data.

The data are transformed to the (f, kx) domain, then the temporal frequencies are
remapped onto the wavenumbers of the exploding reflector model, with the
half-speed ``cs = c0 / sqrt(2)``::

    fkz = sign(f) cs sqrt(kx**2 + f**2 / cs**2)

The lateral shift of steered plane waves is corrected in the (z, kx) domain with
``gamma = sin(theta) / (2 - cos(theta))``.

The pixels of the image are dictated by the FFT lengths and the pitch of the
array: they are returned alongside the image. Resampling the image on another grid
is possible but may introduce artefacts.

References
----------
Garcia et al., Stolt's f-k migration for plane wave ultrasound imaging,
IEEE Trans Ultrason Ferroelectr Freq Control, 2013;60:1853-1867.

"""

import logging
from collections import namedtuple

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from ..config import MigrationOptions
from ..core import ChannelData, SequenceKind
from ..exceptions import ResamplingArtefactWarning, UnsupportedConfiguration
from ..geometry import Grid
from ..helpers import chunk_array, default_block_size, timeit, warn_and_log
from ..sampling import Interpolation
from .das import _check_apertures

__all__ = ["MigrationResult", "bf_migration"]

logger = logging.getLogger(__name__)

MigrationResult = namedtuple("MigrationResult", ["image", "grid"])
MigrationResult.__doc__ = """Migrated image and the grid of its pixels."""

_GRID_INTERPOLANTS = {
    Interpolation.nearest: "nearest",
    Interpolation.linear: "linear",
    Interpolation.cubic: "cubic",
}


def _along(vect, axis, ndim):
    shape = [1] * ndim
    shape[axis] = -1
    return np.reshape(vect, shape)


def _migrate_block(chd, tau, gamma, c0, pitch, numfft, options):
    """
    Migrate a block of transmits.

    Returns
    -------
    ndarray
        Shape (T, N, numtx, *free), cropped to the FFT lengths.
    """
    numfreq, numkx = numfft
    ndim = chd.ndim
    fs = chd.fs
    t0 = float(chd.t0.flat[0])
    cs = c0 / np.sqrt(2.0)
    f = _along((np.arange(numfreq) - numfreq // 2) / numfreq * fs, 0, ndim)
    kx = _along((np.arange(numkx) - numkx // 2) / numkx / pitch, 1, ndim)

    x = np.asarray(chd.data)
    if options.fmod != 0.0:
        x = x * np.exp(2j * np.pi * options.fmod * chd.time)
    x = np.fft.fftshift(np.fft.fft(x, numfreq, axis=0), axes=0)
    x = x * np.exp(-2j * np.pi * f * t0)
    # advance each receive channel by the firing time of its element
    x = x * np.exp(2j * np.pi * f * tau)
    x = np.fft.fftshift(np.fft.fft(x, numkx, axis=1), axes=1)

    # f -> kz: fractional index in the shifted spectrum
    fkz = cs * np.sign(f) * np.sqrt(kx**2 + f**2 / cs**2)
    kkz = (fkz - f.flat[0]) * numfreq / fs
    spectrum = ChannelData(x, 1.0, 0.0, chd.order)
    y = spectrum.sample(
        kkz, options.interpolation, fmod=0.0, backend=options.backend
    )
    if options.jacobian:
        y = y * (f / cs) / (fkz + np.finfo(float).eps)
    y = y * np.exp(2j * np.pi * f * t0)
    b = np.fft.ifft(np.fft.ifftshift(y, axes=0), numfreq, axis=0)

    zax = _along(c0 / 2 * (t0 + np.arange(numfreq) / fs), 0, ndim)
    b = b * np.exp(2j * np.pi * kx * gamma * zax)
    b = np.fft.ifft(np.fft.ifftshift(b, axes=1), numkx, axis=1)
    return b[: chd.numsamples, : chd.numrx]


def _resample(image, migration_grid, grid, method):
    """Interpolate the real and imaginary parts of an image on another grid."""
    values = image[:, 0]
    axes = (migration_grid.xvect, migration_grid.zvect)
    if method == "cubic" and min(len(axis) for axis in axes) < 4:
        method = "linear"
    points = grid.to_1d_points()[:, [0, 2]]
    out = np.zeros((points.shape[0],) + values.shape[2:], image.dtype)
    parts = [(values.real, 1.0)]
    if np.iscomplexobj(values):
        parts.append((values.imag, 1j))
    for part, unit in parts:
        interpolant = RegularGridInterpolator(
            axes, part, method=method, bounds_error=False, fill_value=0.0
        )
        out = out + unit * interpolant(points)
    return out.reshape(grid.shape + values.shape[2:])


def bf_migration(chd, xdc, sequence, c0, grid=None, options=None, **kwargs):
    """
    Stolt's f-k migration of plane wave data acquired with a uniform linear array.

    Parameters
    ----------
    chd : ChannelData
    xdc : Aperture
        Uniform linear array, used both in transmit and receive.
    sequence : Sequence
        Plane wave sequence.
    c0 : float
        Sound speed (m/s).
    grid : Grid, PolarGrid or None
        If given, the image is resampled on this grid (artefacts may appear).
    options : MigrationOptions or None
    kwargs
        Fields of :class:`MigrationOptions`, if ``options`` is not given.

    Returns
    -------
    MigrationResult
        ``image`` has the shape ``(numx, 1, numz, *free, [numtx])`` on the migration
        grid, or ``(*grid.shape, *free, [numtx])`` if a grid is given.

    Raises
    ------
    UnsupportedConfiguration
        If the sequence is not made of plane waves, or if the array is not uniform
        and linear.

    """
    options = MigrationOptions.from_call(options, kwargs)
    if sequence.kind is not SequenceKind.pw:
        raise UnsupportedConfiguration(
            "f-k migration requires a plane wave sequence (current: {})".format(
                sequence.kind.name
            )
        )
    if not xdc.is_uniform_linear():
        raise UnsupportedConfiguration("f-k migration requires a uniform linear array")
    chd = chd.canonical()
    _check_apertures(chd, xdc, xdc, sequence)
    if chd.t0.size > 1:
        chd = chd.rectify_t0(options.interpolation, backend=options.backend)

    numfreq, numkx = options.nfft
    numfft = (numfreq or chd.numsamples, numkx or chd.numrx)
    pitch = xdc.pitch
    free_ones = (1,) * (chd.ndim - 3)
    tau = sequence.delays(xdc, c0)
    angles = sequence.angles
    gamma = np.sin(angles) / (2.0 - np.cos(angles))

    block_size = options.block_size
    if block_size is None:
        block_size = default_block_size(
            numfft[0] * numfft[1] * int(np.prod(chd.free_shape)), itemsize=16
        )

    with timeit("f-k migration", logger=logger):
        blocks = []
        out = 0.0
        for chunk in chunk_array((chd.numtx,), block_size):
            sel = chunk[0]
            numtx = len(range(chd.numtx)[sel])
            b = _migrate_block(
                chd.sub(sel, "M"),
                tau[:, sel].reshape((1, chd.numrx, numtx) + free_ones),
                gamma[sel].reshape((1, 1, numtx) + free_ones),
                c0,
                pitch,
                numfft,
                options,
            )
            logger.debug("f-k migration of transmits {}".format(sel))
            if options.keep_tx:
                blocks.append(b)
            else:
                out = out + b.sum(axis=2, keepdims=True)
        if options.keep_tx:
            out = np.concatenate(blocks, axis=2)

    numz, numx = out.shape[:2]
    zvect = c0 / 2 * (float(chd.t0.flat[0]) + np.arange(numz) / chd.fs)
    xvect = pitch * np.arange(numx) + xdc.positions[0, 0]
    migration_grid = Grid.from_vectors(xvect, xdc.positions[0, 1], zvect)

    # (T, N, M, *free) -> (numx, 1, numz, *free, M)
    image = np.moveaxis(out, (1, 0, 2), (0, 1, -1))[:, np.newaxis]
    if not options.keep_tx:
        image = image[..., 0]
    if grid is None:
        return MigrationResult(image, migration_grid)

    warn_and_log(
        "Resampling a complex image can produce artefacts: leave 'grid' to None "
        "to get the image on its own grid",
        ResamplingArtefactWarning,
        logger,
    )
    method = _GRID_INTERPOLANTS.get(options.interpolation, "linear")
    return MigrationResult(_resample(image, migration_grid, grid, method), grid)
