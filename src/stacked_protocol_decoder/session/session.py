"""Decode session: owns decoder instances, their stacking and the dispatch engine."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..decoders.registry import DecoderRegistry, default_registry
from ..errors import DecodeError, PluginBoundaryError, SessionStateError
from .callbacks import CallbackRegistry, OutputCallback
from .config import SessionConfig, StackConfig
from .dispatch import DispatchEngine, DispatchStats
from .instance import DecoderInstance
from .outputs import OutputRegistry

LOGGER = logging.getLogger("stacked protocol decoder.session")

SampleBuffer = Union[bytes, bytearray, memoryview, np.ndarray]


class DecodeSession:
    """A set of stacked decoder instances fed from one logic sample stream.

    Instances live in an arena list; stacking records successor indices on
    the lower instance. Instances and stacking are fixed once the session
    starts, and nothing in the chain or the callback table changes while a
    decode pass or a dispatch is running.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        registry: Optional[DecoderRegistry] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.registry = registry if registry is not None else default_registry()
        self.callbacks = CallbackRegistry()
        self._instances: List[DecoderInstance] = []
        self._by_id: Dict[str, int] = {}
        self._has_predecessor: set[int] = set()
        self.engine = DispatchEngine(
            self.callbacks,
            self._instances,
            enforce_sample_order=self.config.enforce_sample_order,
        )
        self._pass_depth = 0
        self._started = False

    @property
    def instances(self) -> Sequence[DecoderInstance]:
        return tuple(self._instances)

    @property
    def stats(self) -> DispatchStats:
        return self.engine.stats

    @property
    def started(self) -> bool:
        return self._started

    @property
    def decoding(self) -> bool:
        return self._pass_depth > 0

    def instance(self, instance_id: str) -> DecoderInstance:
        try:
            return self._instances[self._by_id[instance_id]]
        except KeyError as exc:
            raise SessionStateError(f"Unknown decoder instance: {instance_id!r}") from exc

    def roots(self) -> List[DecoderInstance]:
        return [inst for inst in self._instances if inst.index not in self._has_predecessor]

    def successors(self, instance_id: str) -> List[DecoderInstance]:
        return [self._instances[index] for index in self.instance(instance_id).next_indices]

    def inst_new(
        self,
        decoder_id: str,
        options: Optional[Mapping[str, Any]] = None,
        *,
        instance_id: Optional[str] = None,
    ) -> DecoderInstance:
        self._ensure_mutable("create decoder instances")
        self._ensure_not_started("create decoder instances")
        decoder_cls, spec = self.registry.get(decoder_id)

        values = dict(spec.options)
        for key, value in (options or {}).items():
            if key not in spec.options:
                raise PluginBoundaryError(f"Decoder {spec.id} has no option {key!r}.")
            values[key] = value

        if instance_id is None:
            instance_id = self._unique_id(spec.id)
        elif instance_id in self._by_id:
            raise SessionStateError(f"Instance id {instance_id!r} is already in use.")

        decoder = decoder_cls()
        instance = DecoderInstance(
            index=len(self._instances),
            instance_id=instance_id,
            spec=spec,
            decoder=decoder,
            outputs=OutputRegistry(
                instance_id,
                allow_duplicates=self.config.allow_duplicate_outputs,
                max_outputs=self.config.max_outputs_per_instance,
            ),
            options=values,
        )
        decoder.bind(self.engine, instance)
        self._instances.append(instance)
        self._by_id[instance_id] = instance.index
        LOGGER.debug("Created instance %s of decoder %s", instance_id, spec.id)
        return instance

    def inst_stack(
        self,
        lower: Union[str, DecoderInstance],
        upper: Union[str, DecoderInstance],
    ) -> None:
        """Feed protocol output of ``lower`` into ``upper``."""

        self._ensure_mutable("stack decoder instances")
        self._ensure_not_started("stack decoder instances")
        lower_inst = self._lookup(lower)
        upper_inst = self._lookup(upper)
        if lower_inst.index == upper_inst.index:
            raise SessionStateError(f"Cannot stack {lower_inst.instance_id} on itself.")
        if upper_inst.index in lower_inst.next_indices:
            raise SessionStateError(
                f"{upper_inst.instance_id} is already stacked on {lower_inst.instance_id}."
            )
        if self._reaches(upper_inst.index, lower_inst.index):
            raise SessionStateError(
                f"Stacking {upper_inst.instance_id} on {lower_inst.instance_id} would form a cycle."
            )
        lower_inst.next_indices.append(upper_inst.index)
        self._has_predecessor.add(upper_inst.index)
        LOGGER.debug("Stacked %s on top of %s", upper_inst.instance_id, lower_inst.instance_id)

    def register_callback(self, output_type: int, callback: OutputCallback) -> None:
        self._ensure_mutable("register callbacks")
        self.callbacks.register(output_type, callback)

    def find_callback(self, output_type: int) -> Optional[OutputCallback]:
        return self.callbacks.find(output_type)

    def start(self) -> None:
        """Freeze callbacks and run every instance's ``start`` hook."""

        if self._started:
            raise SessionStateError("Session already started.")
        self.callbacks.freeze()
        with self._decode_pass():
            for instance in self._instances:
                instance.decoder.start()
        self._started = True
        LOGGER.info("Session started with %d decoder instances", len(self._instances))

    def send(self, start_sample: int, samples: SampleBuffer) -> int:
        """Feed a chunk of logic samples to every root instance.

        Returns the sample number just past the chunk.
        """

        if not self._started:
            raise SessionStateError("Session must be started before sending samples.")
        if start_sample < 0:
            raise ValueError("start_sample must be non-negative.")
        array = self._as_samples(samples)
        end_sample = start_sample + int(array.shape[0])
        with self._decode_pass():
            for instance in self.roots():
                try:
                    instance.decoder.decode(start_sample, end_sample, array)
                except Exception as exc:
                    raise DecodeError(instance.instance_id, exc) from exc
        return end_sample

    def _as_samples(self, samples: SampleBuffer) -> np.ndarray:
        dtype = np.dtype(f"<u{self.config.unitsize}")
        if isinstance(samples, np.ndarray):
            if samples.dtype.kind not in "ui":
                raise ValueError(f"Sample arrays must hold integers, got dtype {samples.dtype}.")
            flat = samples.reshape(-1)
            limit = int(np.iinfo(dtype).max)
            if flat.size and (int(flat.min()) < 0 or int(flat.max()) > limit):
                raise ValueError(
                    f"Sample values must fit in unitsize {self.config.unitsize} (0..{limit})."
                )
            return flat.astype(dtype, copy=False)
        raw = bytes(samples)
        if len(raw) % self.config.unitsize:
            raise ValueError(
                f"Sample buffer of {len(raw)} bytes is not a multiple of unitsize "
                f"{self.config.unitsize}."
            )
        return np.frombuffer(raw, dtype=dtype)

    @contextmanager
    def _decode_pass(self) -> Iterator[None]:
        self._pass_depth += 1
        try:
            yield
        finally:
            self._pass_depth -= 1

    def _ensure_mutable(self, action: str) -> None:
        if self._pass_depth or self.engine.dispatching:
            raise SessionStateError(f"Cannot {action} while a decode pass is in flight.")

    def _ensure_not_started(self, action: str) -> None:
        # start() hooks declare outputs; they do not run for late arrivals.
        if self._started:
            raise SessionStateError(f"Cannot {action} after the session has started.")

    def _lookup(self, ref: Union[str, DecoderInstance]) -> DecoderInstance:
        if isinstance(ref, DecoderInstance):
            if ref.index >= len(self._instances) or self._instances[ref.index] is not ref:
                raise SessionStateError(f"Instance {ref.instance_id} belongs to another session.")
            return ref
        return self.instance(ref)

    def _unique_id(self, base: str) -> str:
        if base not in self._by_id:
            return base
        suffix = 2
        while f"{base}-{suffix}" in self._by_id:
            suffix += 1
        return f"{base}-{suffix}"

    def _reaches(self, source: int, target: int) -> bool:
        pending = [source]
        seen: set[int] = set()
        while pending:
            current = pending.pop()
            if current == target:
                return True
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self._instances[current].next_indices)
        return False


def build_session(
    stack_config: StackConfig,
    registry: Optional[DecoderRegistry] = None,
) -> DecodeSession:
    """Create a session with the instances and stacking from ``stack_config``."""

    session = DecodeSession(stack_config.session, registry=registry)
    for entry in stack_config.instances:
        session.inst_new(entry.decoder, entry.options, instance_id=entry.instance_id)
    for lower, upper in stack_config.stack:
        session.inst_stack(lower, upper)
    return session


__all__ = ["DecodeSession", "SampleBuffer", "build_session"]
