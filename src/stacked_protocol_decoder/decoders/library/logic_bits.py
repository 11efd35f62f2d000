"""Decoder turning one logic channel into a stream of bits."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ..base import Decoder


class LogicBitsDecoder(Decoder):
    id = "bits"
    name = "Bits"
    longname = "Logic channel bits"
    desc = "One bit per sample from a single logic channel."
    license = "gplv3+"
    inputs = ("logic",)
    outputs = ("bits",)
    annotations = (
        ("bit", "Bit value"),
        ("edge", "Level transition"),
    )
    options = {"channel": 0}

    def __init__(self) -> None:
        super().__init__()
        self.out_ann: Optional[int] = None
        self.out_proto: Optional[int] = None
        self._last_level: Optional[int] = None

    def start(self) -> None:
        self.out_ann = self.add(self.OUTPUT_ANN, "bits")
        self.out_proto = self.add(self.OUTPUT_PROTO, "bits")

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        channel = int(self.option_values["channel"])
        levels = (np.asarray(data) >> channel) & 1
        for offset, level in enumerate(levels.tolist()):
            sample = start_sample + offset
            if self._last_level is not None and level != self._last_level:
                direction = "rising" if level else "falling"
                self._emit_ann(sample, sample, 1, [direction, direction[0].upper()])
            self._last_level = level
            self._emit_ann(sample, sample + 1, 0, [str(level)])
            if self.out_proto is not None:
                self.put(sample, sample + 1, self.out_proto, ("BIT", level))

    def _emit_ann(self, start: int, end: int, ann_format: int, texts: list[str]) -> None:
        if self.out_ann is not None:
            self.put(start, end, self.out_ann, [ann_format, texts])


__all__ = ["LogicBitsDecoder"]
