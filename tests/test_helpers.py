import enum
import logging

import numpy as np
import pytest

import echobeam.helpers
from echobeam.exceptions import (
    EchobeamWarning,
    InvalidDimension,
    InvalidShape,
    NotAnArray,
)


def test_parse_enum_constant():
    Foo = enum.Enum("Foo", "foo bar")

    assert echobeam.helpers.parse_enum_constant("foo", Foo) is Foo.foo
    assert echobeam.helpers.parse_enum_constant(Foo.foo, Foo) is Foo.foo
    assert echobeam.helpers.parse_enum_constant("bar", Foo) is Foo.bar
    assert echobeam.helpers.parse_enum_constant(Foo.bar, Foo) is Foo.bar

    with pytest.raises(ValueError):
        echobeam.helpers.parse_enum_constant("baz", Foo)
    with pytest.raises(ValueError):
        echobeam.helpers.parse_enum_constant(Foo, Foo)


def test_timeit(capsys):
    logger = logging.getLogger(__name__)
    with echobeam.helpers.timeit(logger=logger):
        1 + 1

    out, err = capsys.readouterr()
    assert out == ""
    assert err == ""

    with echobeam.helpers.timeit("Foobar"):
        1 + 1
    out, err = capsys.readouterr()
    assert out.startswith("Foobar")
    assert err == ""


def test_warn_and_log(caplog):
    logger = logging.getLogger(__name__)
    with caplog.at_level(logging.WARNING, logger=__name__):
        with pytest.warns(EchobeamWarning, match="something odd"):
            echobeam.helpers.warn_and_log("something odd", EchobeamWarning, logger)
    assert "something odd" in caplog.text


def test_get_shape_safely():
    shape = (3, 4, 5)
    x = np.arange(3 * 4 * 5).reshape(shape)

    assert echobeam.helpers.get_shape_safely(x, "x", shape) == shape
    assert echobeam.helpers.get_shape_safely(x, "x", (3, None, 5)) == shape
    assert echobeam.helpers.get_shape_safely(x, "x") == shape
    assert echobeam.helpers.get_shape_safely(x, "x", (None, None, None)) == shape

    with pytest.raises(InvalidShape):
        echobeam.helpers.get_shape_safely(x, "x", (3, 4, 666))

    with pytest.raises(InvalidDimension):
        echobeam.helpers.get_shape_safely(x, "x", (3, 4, 5, 6))

    with pytest.raises(NotAnArray):
        echobeam.helpers.get_shape_safely(x.tolist(), "x", (3, 4, 5))


def test_chunk_array():
    # 1D:
    x = np.arange(10)
    size = 3
    res = [[0, 1, 2], [3, 4, 5], [6, 7, 8], [9]]
    chunks = list(echobeam.helpers.chunk_array(x.shape, size))
    assert len(chunks) == len(res)
    for sel, w2 in zip(chunks, res):
        assert np.all(x[sel] == w2)

    # 2D dim 0:
    x = np.arange(20).reshape((10, 2))
    res = [x[0:3, :], x[3:6, :], x[6:9, :], x[9:, :]]
    for sel, w2 in zip(echobeam.helpers.chunk_array(x.shape, size), res):
        assert np.all(x[sel] == w2)

    # 2D dim 1:
    x = np.arange(20).reshape((2, 10))
    res = [x[:, 0:3], x[:, 3:6], x[:, 6:9], x[:, 9:]]
    for sel, w2 in zip(echobeam.helpers.chunk_array(x.shape, size, axis=1), res):
        assert np.all(x[sel] == w2)

    # 3D dim 1:
    x = np.arange(5 * 10 * 3).reshape((5, 10, 3))
    res = [x[:, 0:3, :], x[:, 3:6, :], x[:, 6:9, :], x[:, 9:, :]]
    for sel, w2 in zip(echobeam.helpers.chunk_array(x.shape, size, axis=1), res):
        assert np.all(x[sel] == w2)


def test_default_block_size(monkeypatch):
    monkeypatch.setattr(echobeam.settings, "MAX_BLOCK_BYTES", 8000)
    assert echobeam.helpers.default_block_size(100) == 10
    assert echobeam.helpers.default_block_size(100, itemsize=16) == 5
    assert echobeam.helpers.default_block_size(100, numthreads=2) == 5
    # never less than one unit
    assert echobeam.helpers.default_block_size(10**6) == 1


def test_sizeof_fmt():
    assert echobeam.helpers.sizeof_fmt(1) == "1.0 B"
    assert echobeam.helpers.sizeof_fmt(1024) == "1.0 KiB"
    assert echobeam.helpers.sizeof_fmt(2 * 1024) == "2.0 KiB"
    assert echobeam.helpers.sizeof_fmt(5 * 1024**2) == "5.0 MiB"
