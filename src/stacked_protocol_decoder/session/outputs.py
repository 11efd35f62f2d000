"""Per-instance registry of declared output streams."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..errors import InvalidHandleError

LOGGER = logging.getLogger("stacked protocol decoder.outputs")


class OutputType(enum.IntEnum):
    """Kinds of output stream a decoder may declare."""

    ANN = 0
    PROTO = 1
    BINARY = 2


@dataclass(frozen=True, slots=True)
class OutputStream:
    """Descriptor for one declared output channel of a decoder instance."""

    output_type: int
    protocol_id: str
    instance_id: str
    handle: int


class OutputRegistry:
    """Ordered list of output streams; a stream's position is its handle.

    ``register`` returns ``None`` when the configured policy declines the
    stream. Declining is not an error for the caller.
    """

    def __init__(
        self,
        instance_id: str,
        *,
        allow_duplicates: bool = True,
        max_outputs: Optional[int] = None,
    ) -> None:
        if max_outputs is not None and max_outputs < 0:
            raise ValueError("max_outputs must be non-negative.")
        self.instance_id = instance_id
        self.allow_duplicates = allow_duplicates
        self.max_outputs = max_outputs
        self._streams: List[OutputStream] = []

    def register(self, output_type: int, protocol_id: str) -> Optional[int]:
        if self.max_outputs is not None and len(self._streams) >= self.max_outputs:
            LOGGER.debug(
                "Instance %s reached %d outputs; not creating %s stream.",
                self.instance_id,
                self.max_outputs,
                protocol_id,
            )
            return None
        if not self.allow_duplicates and any(
            stream.output_type == output_type and stream.protocol_id == protocol_id
            for stream in self._streams
        ):
            LOGGER.debug(
                "Instance %s already declares %s output %r.",
                self.instance_id,
                _type_label(output_type),
                protocol_id,
            )
            return None
        handle = len(self._streams)
        self._streams.append(
            OutputStream(
                output_type=output_type,
                protocol_id=protocol_id,
                instance_id=self.instance_id,
                handle=handle,
            )
        )
        return handle

    def resolve(self, handle: int) -> OutputStream:
        # Python's negative indexing must not leak through as a valid handle.
        if handle < 0 or handle >= len(self._streams):
            raise InvalidHandleError(self.instance_id, handle)
        return self._streams[handle]

    def __len__(self) -> int:
        return len(self._streams)

    def __iter__(self) -> Iterator[OutputStream]:
        return iter(self._streams)


def _type_label(output_type: int) -> str:
    try:
        return OutputType(output_type).name
    except ValueError:
        return str(output_type)


__all__ = ["OutputRegistry", "OutputStream", "OutputType"]
