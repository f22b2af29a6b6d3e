"""
Shared helpers of the tests: simulation of point targets.
"""

import numpy as np

from echobeam import Aperture, ChannelData, SequenceKind, ut

FS = 40e6
FC = 5e6
SIGMA = 0.15e-6
C0 = 1540.0
PITCH = 0.3e-3


def pulse(t, fc=FC, sigma=SIGMA):
    """Complex gaussian-modulated pulse centred on t=0."""
    return np.exp(-(t**2) / (2 * sigma**2)) * np.exp(2j * np.pi * fc * t)


def linear_array(numelements=16, pitch=PITCH):
    return Aperture.linear(numelements, pitch)


def _ideal_transmit_times(sequence, tx, target, c0):
    """Arrival time of each pulse of the sequence at the target. Shape: (numpulses,)"""
    if sequence.kind is SequenceKind.fsa:
        return np.linalg.norm(tx.positions - target, axis=-1) / c0
    if sequence.kind is SequenceKind.pw:
        return sequence.focus @ target / c0
    diff = target - sequence.focus
    return np.sign(diff[:, 2]) * np.linalg.norm(diff, axis=-1) / c0


def simulate(
    tx,
    rx,
    sequence,
    targets,
    numsamples=1024,
    fs=FS,
    t0=0.0,
    c0=C0,
    transmit="elements",
    analytic=True,
):
    """
    Channel data of point scatterers of unit amplitude, without spreading loss.

    Parameters
    ----------
    transmit : str
        'elements': superposition of the spherical waves of the elements, fired
        at the delays of the sequence. 'ideal': the wavefront of the sequence
        (spherical from an element, plane, or spherical from the virtual source).

    Returns
    -------
    ChannelData
        Axes ``TNM``.
    """
    targets = np.atleast_2d(np.asarray(targets, dtype=float))
    time = ut.make_timevect(numsamples, 1 / fs, t0)
    numpulses = sequence.numpulses(tx)
    data = np.zeros((numsamples, rx.numelements, numpulses), complex)
    for target in targets:
        d_rx = np.linalg.norm(rx.positions - target, axis=-1) / c0
        if transmit == "ideal":
            arrival = d_rx[:, np.newaxis] + _ideal_transmit_times(sequence, tx, target, c0)
            data += pulse(time[:, np.newaxis, np.newaxis] - arrival)
        else:
            delays = sequence.delays(tx, c0)
            apod = np.broadcast_to(sequence.apodization(tx), delays.shape)
            d_tx = np.linalg.norm(tx.positions - target, axis=-1) / c0
            # (N, M, V)
            arrival = d_rx[:, np.newaxis, np.newaxis] + (delays + d_tx[:, np.newaxis])
            contrib = apod * pulse(time[:, np.newaxis, np.newaxis, np.newaxis] - arrival)
            data += contrib.sum(axis=2)
    if not analytic:
        data = data.real
    return ChannelData(data, fs, t0)


def peak_position(image, grid):
    """Coordinates of the pixel of maximum magnitude. ``image`` has the shape of the grid."""
    idx = np.unravel_index(np.argmax(np.abs(image)), grid.shape)
    return grid.to_1d_points()[np.ravel_multi_index(idx, grid.shape)]
