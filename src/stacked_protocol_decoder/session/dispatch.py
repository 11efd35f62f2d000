"""Routing of data units emitted by decoders through ``put``.

Annotation units go to the host callback, protocol units go to every decoder
stacked on top of the emitter, binary units are not supported yet. Failures
inside one emission are logged and the emission is dropped; they never
propagate to the emitting decoder or to sibling successors. Only malformed
arguments at the ``add``/``put`` boundary raise :class:`PluginBoundaryError`.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from ..errors import (
    DispatchError,
    InvalidHandleError,
    MalformedAnnotationError,
    PluginBoundaryError,
    SuccessorFailure,
    UnknownOutputTypeError,
    UnsupportedOutputTypeError,
)
from .annotations import convert_annotation
from .callbacks import CallbackRegistry
from .instance import DecoderInstance
from .outputs import OutputStream, OutputType

LOGGER = logging.getLogger("stacked protocol decoder.dispatch")

MAX_SAMPLE = 2**64 - 1


@dataclass(slots=True)
class ProtocolData:
    """A data unit in transit; lives only for the duration of one ``put``."""

    start_sample: int
    end_sample: int
    output: OutputStream
    ann_format: Optional[int] = None
    data: Any = None


@dataclass(slots=True)
class DispatchStats:
    """Counters of delivered and dropped emissions."""

    annotations_delivered: int = 0
    protocol_deliveries: int = 0
    invalid_handles: int = 0
    malformed_annotations: int = 0
    unsupported_outputs: int = 0
    unknown_outputs: int = 0
    successor_failures: int = 0

    @property
    def dropped(self) -> int:
        return (
            self.invalid_handles
            + self.malformed_annotations
            + self.unsupported_outputs
            + self.unknown_outputs
        )


class DispatchEngine:
    """Classifies and routes emissions between the instances of one session.

    ``instances`` is the session's arena; successors are looked up in it by
    index. The engine holds no lock while calling into a successor, so a
    successor may emit its own units from inside ``decode``.
    """

    def __init__(
        self,
        callbacks: CallbackRegistry,
        instances: Sequence[DecoderInstance],
        *,
        enforce_sample_order: bool = True,
    ) -> None:
        self.callbacks = callbacks
        self._instances = instances
        self.enforce_sample_order = enforce_sample_order
        self.stats = DispatchStats()
        self._depth = 0

    @property
    def dispatching(self) -> bool:
        """True while any ``put`` is routing a unit, including nested ones."""
        return self._depth > 0

    def add(self, instance: DecoderInstance, output_type: Any, protocol_id: Any) -> Optional[int]:
        if isinstance(output_type, bool) or not isinstance(output_type, int):
            raise PluginBoundaryError(
                f"add() output type must be an integer, got {type(output_type).__name__}."
            )
        try:
            kind = OutputType(output_type)
        except ValueError as exc:
            raise PluginBoundaryError(f"add() got unknown output type {output_type}.") from exc
        if not isinstance(protocol_id, str) or not protocol_id:
            raise PluginBoundaryError("add() protocol id must be a non-empty string.")
        return instance.outputs.register(kind, protocol_id)

    def put(
        self,
        instance: DecoderInstance,
        start_sample: Any,
        end_sample: Any,
        output_id: Any,
        data: Any,
    ) -> None:
        start_sample, end_sample = self._check_range(start_sample, end_sample)
        output_id = _as_int(output_id, "put() output id")

        try:
            output = instance.outputs.resolve(output_id)
        except InvalidHandleError as exc:
            self.stats.invalid_handles += 1
            LOGGER.error(
                "Protocol decoder %s submitted invalid output ID %d.",
                instance.decoder_name,
                exc.handle,
            )
            return

        unit = ProtocolData(start_sample=start_sample, end_sample=end_sample, output=output)
        self._depth += 1
        try:
            self._route(instance, unit, data)
        except DispatchError as exc:
            LOGGER.error("%s", exc)
        finally:
            self._depth -= 1

    def _route(self, instance: DecoderInstance, unit: ProtocolData, data: Any) -> None:
        output_type = unit.output.output_type
        if output_type == OutputType.ANN:
            self._put_annotation(instance, unit, data)
        elif output_type == OutputType.PROTO:
            self._put_protocol(instance, unit, data)
        elif output_type == OutputType.BINARY:
            self.stats.unsupported_outputs += 1
            raise UnsupportedOutputTypeError("Binary output is not yet supported.")
        else:
            self.stats.unknown_outputs += 1
            raise UnknownOutputTypeError(instance.decoder_name, output_type)

    def _put_annotation(self, instance: DecoderInstance, unit: ProtocolData, data: Any) -> None:
        callback = self.callbacks.find(OutputType.ANN)
        if callback is None:
            return
        try:
            unit.ann_format, unit.data = convert_annotation(
                instance.decoder_name, instance.spec.annotations, data
            )
        except MalformedAnnotationError:
            self.stats.malformed_annotations += 1
            raise
        callback(unit)
        self.stats.annotations_delivered += 1

    def _put_protocol(self, instance: DecoderInstance, unit: ProtocolData, data: Any) -> None:
        for index in tuple(instance.next_indices):
            successor = self._instances[index]
            try:
                successor.decoder.decode(unit.start_sample, unit.end_sample, data)
            except Exception as exc:  # noqa: BLE001 - successor code is untrusted
                self.stats.successor_failures += 1
                failure = SuccessorFailure(successor.instance_id, exc)
                LOGGER.error("%s", failure, exc_info=exc)
                continue
            self.stats.protocol_deliveries += 1

    def _check_range(self, start_sample: Any, end_sample: Any) -> Tuple[int, int]:
        start = _as_int(start_sample, "put() start sample")
        end = _as_int(end_sample, "put() end sample")
        for label, value in (("start", start), ("end", end)):
            if value < 0 or value > MAX_SAMPLE:
                raise PluginBoundaryError(f"put() {label} sample {value} is outside 0..2**64-1.")
        if self.enforce_sample_order and start > end:
            raise PluginBoundaryError(f"put() start sample {start} is after end sample {end}.")
        return start, end


def _as_int(value: Any, label: str) -> int:
    # numpy integer scalars register as numbers.Integral.
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise PluginBoundaryError(f"{label} must be an integer, got {type(value).__name__}.")
    return int(value)


__all__ = ["DispatchEngine", "DispatchStats", "ProtocolData", "MAX_SAMPLE"]
