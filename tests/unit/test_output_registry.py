"""Tests for the per-instance output stream registry."""

from __future__ import annotations

import pytest

from stacked_protocol_decoder.errors import InvalidHandleError
from stacked_protocol_decoder.session.outputs import OutputRegistry, OutputType


def test_register_returns_insertion_order_handles() -> None:
    registry = OutputRegistry("uart")
    assert registry.register(OutputType.ANN, "uart") == 0
    assert registry.register(OutputType.PROTO, "uart") == 1
    assert registry.register(OutputType.ANN, "uart") == 2

    stream = registry.resolve(1)
    assert stream.output_type == OutputType.PROTO
    assert stream.protocol_id == "uart"
    assert stream.instance_id == "uart"
    assert stream.handle == 1
    assert len(registry) == 3


@pytest.mark.parametrize("handle", [3, 10, -1])
def test_resolve_rejects_out_of_range_handles(handle: int) -> None:
    registry = OutputRegistry("spi")
    for _ in range(3):
        registry.register(OutputType.ANN, "spi")
    with pytest.raises(InvalidHandleError) as excinfo:
        registry.resolve(handle)
    assert excinfo.value.handle == handle


def test_duplicate_suppression_declines_without_error() -> None:
    registry = OutputRegistry("i2c", allow_duplicates=False)
    assert registry.register(OutputType.ANN, "i2c") == 0
    assert registry.register(OutputType.ANN, "i2c") is None
    assert registry.register(OutputType.PROTO, "i2c") == 1
    assert len(registry) == 2


def test_max_outputs_declines_further_streams() -> None:
    registry = OutputRegistry("can", max_outputs=1)
    assert registry.register(OutputType.ANN, "can") == 0
    assert registry.register(OutputType.PROTO, "can") is None
    assert [stream.handle for stream in registry] == [0]


def test_negative_max_outputs_is_rejected() -> None:
    with pytest.raises(ValueError):
        OutputRegistry("x", max_outputs=-1)
