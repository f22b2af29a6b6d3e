import logging

import numpy as np
import pytest

from echobeam import Sequence
from echobeam.encoding import focus_tx, refocus
from echobeam.exceptions import InvalidShape

from helpers import C0, linear_array, simulate

TARGET = np.array([0.6e-3, 0.0, 10e-3])


@pytest.fixture(scope="module")
def chd_fsa():
    xdc = linear_array(16)
    return simulate(xdc, xdc, Sequence.fsa(C0), TARGET)


def _relative_error(actual, expected):
    return np.linalg.norm(actual - expected) / np.linalg.norm(expected)


def test_identity(xdc, fsa, chd_fsa):
    assert focus_tx(chd_fsa, xdc, fsa) is chd_fsa


@pytest.mark.parametrize("interpolation, rtol", [("cubic", 0.05), ("freq", 1e-3)])
def test_focus_plane_waves(xdc, chd_fsa, interpolation, rtol):
    seq = Sequence.plane_waves(np.radians([-10.0, 0.0, 10.0]), C0)
    z = focus_tx(chd_fsa, xdc, seq, interpolation=interpolation)
    assert z.numtx == 3
    assert z.numrx == 16
    assert z.t0.shape == (1, 1, 1)
    # the delays span 2 * 2.25 mm * sin(10 deg) / c0
    assert z.numsamples > chd_fsa.numsamples

    expected = simulate(
        xdc, xdc, seq, TARGET, numsamples=z.numsamples, t0=z.t0.item()
    )
    scale = np.abs(expected.data).max()
    np.testing.assert_allclose(z.data / scale, expected.data / scale, atol=rtol)


def test_focus_virtual_sources(xdc, chd_fsa):
    foci = np.array([[-1e-3, 0.0, 15e-3], [1e-3, 0.0, -10e-3]])
    seq = Sequence.virtual_sources(foci, C0)
    z = focus_tx(chd_fsa, xdc, seq, interpolation="freq")
    expected = simulate(
        xdc, xdc, seq, TARGET, numsamples=z.numsamples, t0=z.t0.item()
    )
    scale = np.abs(expected.data).max()
    np.testing.assert_allclose(z.data / scale, expected.data / scale, atol=1e-3)


def test_focus_apodization(xdc, chd_fsa):
    apod = np.zeros((16, 2))
    apod[:8, 0] = 1.0
    apod[8:, 1] = 1.0
    seq = Sequence("pw", [[0.0, 0.0, 1.0]] * 2, C0, apodization=apod)
    z = focus_tx(chd_fsa, xdc, seq)
    # no delay: the halves of the aperture are summed sample by sample
    np.testing.assert_allclose(
        z.data[:-1, :, 0], chd_fsa.data[:-1, :, :8].sum(axis=-1), atol=1e-9
    )
    np.testing.assert_allclose(
        z.data[:-1, :, 1], chd_fsa.data[:-1, :, 8:].sum(axis=-1), atol=1e-9
    )


def test_focus_length(xdc, chd_fsa, caplog):
    seq = Sequence.plane_waves(np.radians([-10.0, 10.0]), C0)
    z = focus_tx(chd_fsa, xdc, seq)
    assert focus_tx(chd_fsa, xdc, seq, buffer=10).numsamples == z.numsamples + 10

    padded = focus_tx(chd_fsa, xdc, seq, length="pow2")
    assert padded.numsamples == 2048
    np.testing.assert_allclose(padded.data[: z.numsamples], z.data)

    with caplog.at_level(logging.WARNING, logger="echobeam.encoding"):
        short = focus_tx(chd_fsa, xdc, seq, length=100)
    assert short.numsamples == 100
    assert "shorter" in caplog.text


def test_focus_mismatch(xdc, chd_fsa):
    seq = Sequence.plane_waves([0.0], C0)
    with pytest.raises(InvalidShape):
        focus_tx(chd_fsa.sub(slice(0, 8)), xdc, seq)


def test_refocus(xdc, chd_fsa):
    seq = Sequence.plane_waves(np.radians(np.linspace(-30.0, 30.0, 31)), C0)
    encoded = focus_tx(chd_fsa, xdc, seq, interpolation="freq")

    decoded = refocus(encoded, xdc, seq, gamma=1e-3)
    assert decoded.numtx == 16
    assert decoded.numrx == 16
    assert np.iscomplexobj(decoded.data)
    small = _relative_error(decoded.sample(chd_fsa.time), chd_fsa.data)

    decoded = refocus(encoded, xdc, seq, gamma=1e3)
    large = _relative_error(decoded.sample(chd_fsa.time), chd_fsa.data)
    assert small < 0.1
    assert small < large


def test_refocus_real_data(xdc):
    chd = simulate(xdc, xdc, Sequence.fsa(C0), TARGET, analytic=False)
    seq = Sequence.plane_waves(np.radians(np.linspace(-30.0, 30.0, 31)), C0)
    decoded = refocus(focus_tx(chd, xdc, seq, interpolation="freq"), xdc, seq, 1e-3)
    assert not np.iscomplexobj(decoded.data)
    assert _relative_error(decoded.sample(chd.time), chd.data) < 0.1


def test_refocus_mismatch(xdc, chd_fsa):
    seq = Sequence.plane_waves([0.0, 0.1], C0)
    with pytest.raises(InvalidShape):
        refocus(chd_fsa, xdc, seq)
