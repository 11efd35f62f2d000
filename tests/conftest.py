"""Pytest fixtures and path configuration for stacked protocol decoder tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from stacked_protocol_decoder.decoders import Decoder, DecoderRegistry  # noqa: E402
from stacked_protocol_decoder.session import DecodeSession  # noqa: E402


class EmitterDecoder(Decoder):
    """Declares two annotation formats; tests drive add/put by hand."""

    id = "emitter"
    name = "Emitter"
    annotations = (("bit", "Bit value"), ("word", "Word value"))
    options = {"trace": None}

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        trace = self.option_values["trace"]
        if trace is not None:
            trace.append((self._instance.instance_id, start_sample, end_sample, data))


class RecorderDecoder(EmitterDecoder):
    """Appends every decode call to the shared ``trace`` option."""

    id = "recorder"
    name = "Recorder"


class FailingDecoder(EmitterDecoder):
    """Records the call, then raises."""

    id = "failing"
    name = "Failing"

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        super().decode(start_sample, end_sample, data)
        raise RuntimeError("decoder exploded")


class RelayDecoder(EmitterDecoder):
    """Re-emits whatever it receives on its own protocol and annotation outputs."""

    id = "relay"
    name = "Relay"

    def start(self) -> None:
        self.out_ann = self.add(self.OUTPUT_ANN, "relay")
        self.out_proto = self.add(self.OUTPUT_PROTO, "relay")

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        super().decode(start_sample, end_sample, data)
        self.put(start_sample, end_sample, self.out_ann, [0, [repr(data)]])
        self.put(start_sample, end_sample, self.out_proto, data)


@pytest.fixture
def registry() -> DecoderRegistry:
    registry = DecoderRegistry()
    for decoder_cls in (EmitterDecoder, RecorderDecoder, FailingDecoder, RelayDecoder):
        registry.register(decoder_cls)
    return registry


@pytest.fixture
def session(registry: DecoderRegistry) -> DecodeSession:
    return DecodeSession(registry=registry)


@pytest.fixture
def trace() -> List[tuple]:
    return []
