"""Running decoder instances and their position in the stacking chain."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List

from .outputs import OutputRegistry

if TYPE_CHECKING:
    from ..decoders.base import Decoder, DecoderSpec


@dataclass(slots=True)
class DecoderInstance:
    """One decoder object inside a session.

    ``next_indices`` are positions in the owning session's instance arena, in
    the order the successors were stacked.
    """

    index: int
    instance_id: str
    spec: "DecoderSpec"
    decoder: "Decoder"
    outputs: OutputRegistry
    options: Dict[str, Any] = field(default_factory=dict)
    next_indices: List[int] = field(default_factory=list)

    @property
    def decoder_name(self) -> str:
        return self.spec.name


__all__ = ["DecoderInstance"]
