import numpy as np
import pytest

import echobeam
from echobeam.config import (
    DEFAULTS,
    AdjointOptions,
    DasOptions,
    EikonalOptions,
    MigrationOptions,
)


class TestConfig:
    @pytest.fixture()
    def conf(self):
        return echobeam.config.Config(
            [
                ("numelements", 1),
                ("name", "Foo Bar"),
                ("pi_list", [3, 1, 4, 1, 6]),
                ("submodule", dict(subval1=1, subval2=2)),
            ]
        )

    def test_config(self, conf):
        conf["bar"] = 2
        conf["bar.baz"] = 3

        str(conf)
        repr(conf)

        assert conf["numelements"] == 1
        assert conf["name"] == "Foo Bar"

        assert conf["bar.baz"] == 3
        assert str(conf).splitlines()[0] == "bar: 2"

    def test_config_merge(self, conf):
        conf2 = dict(numelements=2, newval=666, submodule=dict(subval1=777, newval9=9))

        assert conf["submodule"]["subval1"] == 1
        with pytest.raises(KeyError):
            conf["submodule"]["newval9"]

        conf.merge(conf2)
        assert type(conf) is echobeam.config.Config

        assert conf["numelements"] == 2
        assert conf["name"] == "Foo Bar"
        assert conf["submodule"]["subval1"] == 777
        assert conf["submodule"]["subval2"] == 2
        assert conf["submodule"]["newval9"] == 9

    def test_copy_is_deep(self, conf):
        conf2 = conf.copy()
        conf2["submodule"]["subval1"] = 42
        assert conf["submodule"]["subval1"] == 1


@pytest.fixture()
def restore_defaults():
    saved = DEFAULTS.copy()
    yield DEFAULTS
    DEFAULTS.clear()
    DEFAULTS.update(saved)


def test_das_options_defaults():
    opts = DasOptions()
    assert opts.interpolation is echobeam.Interpolation.cubic
    assert opts.backend is echobeam.Backend.numpy
    assert opts.fmod == 0.0
    assert opts.keep_tx is False
    assert opts.keep_rx is False
    assert opts.block_size is None
    assert opts.numthreads == echobeam.settings.NUMTHREADS

    opts2 = DasOptions(interpolation="linear", keep_rx=True, block_size=4)
    assert opts2.interpolation is echobeam.Interpolation.linear
    assert opts2.keep_rx is True
    assert opts2.block_size == 4
    assert opts2 != opts
    assert DasOptions() == opts
    repr(opts2)
    assert set(opts2.as_dict()) == set(DasOptions.__slots__)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(interpolation="spline"),
        dict(backend="cuda"),
        dict(keep_tx="yes"),
        dict(block_size=0),
        dict(block_size=2.5),
        dict(fmod=np.nan),
        dict(numthreads=-1),
    ],
)
def test_das_options_invalid(kwargs):
    with pytest.raises(ValueError):
        DasOptions(**kwargs)


def test_from_call():
    opts = DasOptions(keep_tx=True)
    assert DasOptions.from_call(opts, {}) is opts
    assert DasOptions.from_call(None, dict(keep_tx=True)) == opts
    with pytest.raises(TypeError):
        DasOptions.from_call(opts, dict(keep_rx=True))
    with pytest.raises(TypeError):
        DasOptions.from_call(AdjointOptions(), {})
    with pytest.raises(TypeError):
        # unknown keyword
        DasOptions.from_call(None, dict(foo=1))


def test_eikonal_options():
    opts = EikonalOptions()
    assert opts.interpolant == "cubic"
    assert opts.interpolation is echobeam.Interpolation.cubic
    opts = EikonalOptions(interpolant="linear", keep_tx=True)
    assert opts.interpolant == "linear"
    assert opts.keep_tx
    with pytest.raises(ValueError):
        EikonalOptions(interpolant="nearest")


def test_adjoint_options():
    opts = AdjointOptions()
    assert opts.nfft is None
    assert opts.fthresh == -np.inf
    assert AdjointOptions(fthresh=-20).fthresh == -20.0
    with pytest.raises(ValueError):
        AdjointOptions(fthresh=3.0)
    with pytest.raises(ValueError):
        AdjointOptions(nfft=0)


def test_migration_options():
    opts = MigrationOptions()
    assert opts.nfft == (None, None)
    assert opts.jacobian is True
    assert MigrationOptions(nfft=(256, None)).nfft == (256, None)
    with pytest.raises(ValueError):
        MigrationOptions(nfft=256)
    with pytest.raises(ValueError):
        MigrationOptions(nfft=(256, -1))


def test_defaults_merge(restore_defaults):
    restore_defaults.merge(
        dict(interpolation="lanczos3", keep_rx=True, eikonal=dict(interpolant="linear"))
    )
    opts = DasOptions()
    assert opts.interpolation is echobeam.Interpolation.lanczos3
    assert opts.keep_rx is True
    assert EikonalOptions().interpolant == "linear"
    # explicit values win over the defaults
    assert DasOptions(keep_rx=False).keep_rx is False


def test_defaults_restored():
    assert DEFAULTS["interpolation"] == "cubic"
    assert DEFAULTS["eikonal"]["interpolant"] == "cubic"
