"""End-to-end decoding through the bundled bits -> bytes stack."""

from __future__ import annotations

from typing import Any, List

import numpy as np
import pytest

from stacked_protocol_decoder.decoders import Decoder, default_registry
from stacked_protocol_decoder.session import DecodeSession, OutputType, ProtocolData


def _bit_samples(payload: bytes, *, channel: int = 0) -> np.ndarray:
    bits = np.unpackbits(np.frombuffer(payload, dtype=np.uint8))
    return (bits << channel).astype(np.uint8)


def _session(received: List[ProtocolData], **bytes_options: Any) -> DecodeSession:
    session = DecodeSession()
    bits = session.inst_new("bits", {"channel": 2})
    upper = session.inst_new("bytes", bytes_options)
    session.inst_stack(bits, upper)
    session.register_callback(OutputType.ANN, received.append)
    session.start()
    return session


def test_bytes_are_assembled_across_chunks() -> None:
    received: List[ProtocolData] = []
    session = _session(received)
    samples = _bit_samples(b"Hi", channel=2)

    end = session.send(0, samples[:5])
    end = session.send(end, samples[5:11])
    end = session.send(end, samples[11:])

    assert end == 16
    byte_units = [unit for unit in received if unit.output.instance_id == "bytes"]
    assert [unit.data for unit in byte_units] == [("48", "0x48"), ("69", "0x69")]
    assert [(unit.start_sample, unit.end_sample) for unit in byte_units] == [(0, 8), (8, 16)]
    assert session.stats.dropped == 0
    assert session.stats.successor_failures == 0
    assert session.stats.protocol_deliveries == 16


def test_bit_and_edge_annotations() -> None:
    received: List[ProtocolData] = []
    session = _session(received)
    session.send(100, _bit_samples(b"\x41", channel=2))

    bit_units = [u for u in received if u.output.instance_id == "bits" and u.ann_format == 0]
    edges = [u for u in received if u.output.instance_id == "bits" and u.ann_format == 1]
    assert [u.data[0] for u in bit_units] == list("01000001")
    assert bit_units[0].start_sample == 100 and bit_units[-1].end_sample == 108
    assert [(u.start_sample, u.data[0]) for u in edges] == [
        (101, "rising"),
        (102, "falling"),
        (107, "rising"),
    ]


def test_lsb_first_bit_order() -> None:
    received: List[ProtocolData] = []
    session = _session(received, bitorder="lsb-first")
    session.send(0, _bit_samples(b"\x82", channel=2))
    byte_units = [unit for unit in received if unit.output.instance_id == "bytes"]
    assert byte_units[0].data[0] == "41"


def test_invalid_bitorder_fails_at_start() -> None:
    session = DecodeSession()
    session.inst_new("bytes", {"bitorder": "middle-out"})
    with pytest.raises(ValueError, match="bitorder"):
        session.start()


class _BrokenAnnotations(Decoder):
    id = "broken"
    name = "Broken"
    inputs = ("bytes",)
    annotations = (("text", "Text"),)

    def start(self) -> None:
        self.out_ann = self.add(self.OUTPUT_ANN, "broken")

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        self.put(start_sample, end_sample, self.out_ann, [3, ["bad"]])


def test_bad_emissions_in_a_stack_do_not_halt_siblings() -> None:
    registry = default_registry()
    registry.register(_BrokenAnnotations)
    session = DecodeSession(registry=registry)
    bits = session.inst_new("bits")
    upper = session.inst_new("bytes")
    broken = session.inst_new("broken")
    session.inst_stack(bits, broken)
    session.inst_stack(bits, upper)
    received: List[ProtocolData] = []
    session.register_callback(OutputType.ANN, received.append)
    session.start()

    session.send(0, _bit_samples(b"\xff"))

    assert session.stats.malformed_annotations == 8
    assert [unit.data[0] for unit in received if unit.output.instance_id == "bytes"] == ["FF"]
