"""Decoder assembling bits from a lower decoder into bytes."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from ..base import Decoder

_BIT_ORDERS = ("msb-first", "lsb-first")


class BytesDecoder(Decoder):
    id = "bytes"
    name = "Bytes"
    longname = "Bit to byte assembler"
    desc = "Groups eight BIT units from a stacked decoder into one byte."
    license = "gplv3+"
    inputs = ("bits",)
    outputs = ("bytes",)
    annotations = (("byte", "Byte value"),)
    options = {"bitorder": "msb-first"}

    def __init__(self) -> None:
        super().__init__()
        self.out_ann: Optional[int] = None
        self.out_proto: Optional[int] = None
        self._bits: List[Tuple[int, int]] = []  # (start_sample, bit)

    def start(self) -> None:
        if self.option_values["bitorder"] not in _BIT_ORDERS:
            raise ValueError(f"bitorder must be one of {_BIT_ORDERS}.")
        self.out_ann = self.add(self.OUTPUT_ANN, "bytes")
        self.out_proto = self.add(self.OUTPUT_PROTO, "bytes")

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        kind, bit = data
        if kind != "BIT":
            return
        self._bits.append((start_sample, bit))
        if len(self._bits) < 8:
            return

        bits = [value for _, value in self._bits]
        if self.option_values["bitorder"] == "lsb-first":
            bits.reverse()
        byte = 0
        for value in bits:
            byte = (byte << 1) | value
        first = self._bits[0][0]
        self._bits = []

        if self.out_ann is not None:
            self.put(first, end_sample, self.out_ann, [0, [f"{byte:02X}", f"0x{byte:02x}"]])
        if self.out_proto is not None:
            self.put(first, end_sample, self.out_proto, ("BYTE", byte))


__all__ = ["BytesDecoder"]
