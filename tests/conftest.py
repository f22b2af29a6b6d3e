import numpy as np
import pytest

import echobeam
from helpers import C0, linear_array


@pytest.fixture
def xdc():
    return linear_array(16)


@pytest.fixture(params=["numpy", "numba"], ids=["numpy", "numba"])
def backend(request):
    return echobeam.Backend[request.param]


@pytest.fixture
def fsa():
    return echobeam.Sequence.fsa(C0)


@pytest.fixture
def rng():
    return np.random.default_rng(31031596)
