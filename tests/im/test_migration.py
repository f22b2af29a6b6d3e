import numpy as np
import pytest

from echobeam import Aperture, Grid, Sequence
from echobeam.exceptions import ResamplingArtefactWarning, UnsupportedConfiguration
from echobeam.im import bf_migration

from helpers import C0, FS, linear_array, peak_position, simulate

# on the lateral position of an element
TARGET = np.array([0.15e-3, 0.0, 10e-3])
NFFT = (2048, 128)


@pytest.fixture(scope="module")
def array32():
    return linear_array(32)


@pytest.fixture(scope="module")
def pw0(array32):
    return Sequence.plane_waves([0.0], C0)


@pytest.fixture(scope="module")
def chd_pw0(array32, pw0):
    return simulate(array32, array32, pw0, TARGET, transmit="ideal")


def _assert_focused(result, target=TARGET, lateral_tol=0.16e-3, depth_tol=0.06e-3):
    x, _, z = peak_position(result.image, result.grid)
    assert abs(x - target[0]) < lateral_tol
    assert abs(z - target[2]) < depth_tol


@pytest.mark.parametrize("jacobian", [True, False])
def test_plane_wave(array32, pw0, chd_pw0, jacobian):
    result = bf_migration(chd_pw0, array32, pw0, C0, nfft=NFFT, jacobian=jacobian)
    image, grid = result
    assert image.shape == (32, 1, chd_pw0.numsamples)
    assert grid.shape == image.shape
    np.testing.assert_allclose(grid.xvect, array32.x)
    np.testing.assert_allclose(grid.dz, C0 / 2 / FS)
    _assert_focused(result)


def test_default_fft_lengths(array32, pw0, chd_pw0):
    result = bf_migration(chd_pw0, array32, pw0, C0)
    assert result.image.shape == (32, 1, chd_pw0.numsamples)
    _assert_focused(result)


def test_time_offset(array32, pw0):
    t0 = 2e-6
    chd = simulate(array32, array32, pw0, TARGET, numsamples=800, t0=t0, transmit="ideal")
    result = bf_migration(chd, array32, pw0, C0, nfft=NFFT)
    np.testing.assert_allclose(result.grid.zvect[0], C0 / 2 * t0)
    _assert_focused(result)


def test_steered_plane_waves(array32):
    seq = Sequence.plane_waves(np.radians([-5.0, 0.0, 5.0]), C0)
    chd = simulate(array32, array32, seq, TARGET, t0=-1e-6, transmit="ideal")
    result = bf_migration(chd, array32, seq, C0, nfft=NFFT, keep_tx=True, block_size=2)
    assert result.image.shape == (32, 1, chd.numsamples, 3)
    for i in range(3):
        x, _, z = peak_position(result.image[..., i], result.grid)
        assert abs(x - TARGET[0]) < 0.45e-3
        assert abs(z - TARGET[2]) < 0.15e-3

    compound = bf_migration(chd, array32, seq, C0, nfft=NFFT)
    np.testing.assert_allclose(
        compound.image, result.image.sum(axis=-1), rtol=1e-9, atol=1e-9
    )
    _assert_focused(compound, lateral_tol=0.31e-3, depth_tol=0.1e-3)


def test_frames(array32, pw0, chd_pw0):
    ref = bf_migration(chd_pw0, array32, pw0, C0, nfft=NFFT).image
    data = np.stack([chd_pw0.data, 3 * chd_pw0.data], axis=-1)
    chd = chd_pw0.replace(data=data)
    image = bf_migration(chd, array32, pw0, C0, nfft=NFFT).image
    assert image.shape == ref.shape + (2,)
    np.testing.assert_allclose(image[..., 0], ref, rtol=1e-9, atol=1e-9)
    np.testing.assert_allclose(image[..., 1], 3 * ref, rtol=1e-9, atol=1e-9)


def test_resampling(array32, pw0, chd_pw0):
    grid = Grid(-1e-3, 1e-3, 0.0, 0.0, 9e-3, 11e-3, 0.05e-3)
    with pytest.warns(ResamplingArtefactWarning):
        result = bf_migration(chd_pw0, array32, pw0, C0, grid=grid, nfft=NFFT)
    assert result.grid is grid
    assert result.image.shape == grid.shape
    _assert_focused(result, lateral_tol=0.16e-3, depth_tol=0.06e-3)

    with pytest.warns(ResamplingArtefactWarning):
        result = bf_migration(
            chd_pw0, array32, pw0, C0, grid=grid, nfft=NFFT, interpolation="linear"
        )
    _assert_focused(result, lateral_tol=0.16e-3, depth_tol=0.06e-3)


def test_unsupported(array32, chd_pw0, pw0):
    with pytest.raises(UnsupportedConfiguration):
        bf_migration(chd_pw0, array32, Sequence.fsa(C0), C0)

    foci = np.array([[0.0, 0.0, 20e-3]])
    with pytest.raises(UnsupportedConfiguration):
        bf_migration(chd_pw0, array32, Sequence.virtual_sources(foci, C0), C0)

    positions = array32.positions.copy()
    positions[5, 0] += 0.05e-3
    with pytest.raises(UnsupportedConfiguration):
        bf_migration(chd_pw0, Aperture(positions), pw0, C0)
