"""Base class and metadata model for protocol decoders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Mapping, Optional, Sequence, Tuple

from ..errors import DecoderLoadError, PluginBoundaryError
from ..session.outputs import OutputType

if TYPE_CHECKING:
    from ..session.dispatch import DispatchEngine
    from ..session.instance import DecoderInstance


@dataclass(frozen=True, slots=True)
class AnnotationFormat:
    """One annotation format declared by a decoder class; referenced by index."""

    name: str
    description: str


@dataclass(frozen=True, slots=True)
class DecoderSpec:
    """Static metadata of a decoder class, validated once at registration."""

    id: str
    name: str
    longname: str = ""
    desc: str = ""
    license: str = ""
    inputs: Tuple[str, ...] = tuple()
    outputs: Tuple[str, ...] = tuple()
    annotations: Tuple[AnnotationFormat, ...] = tuple()
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_class(cls, decoder_cls: type) -> "DecoderSpec":
        label = getattr(decoder_cls, "__name__", repr(decoder_cls))
        decoder_id = getattr(decoder_cls, "id", None)
        name = getattr(decoder_cls, "name", None)
        if not isinstance(decoder_id, str) or not decoder_id:
            raise DecoderLoadError(f"Decoder class {label} has no valid 'id' attribute.")
        if not isinstance(name, str) or not name:
            raise DecoderLoadError(f"Decoder {decoder_id} has no valid 'name' attribute.")

        annotations = []
        for index, entry in enumerate(getattr(decoder_cls, "annotations", ())):
            if (
                not isinstance(entry, (list, tuple))
                or len(entry) != 2
                or not all(isinstance(part, str) for part in entry)
            ):
                raise DecoderLoadError(
                    f"Decoder {decoder_id} annotation format {index} must be a "
                    "(name, description) pair of strings."
                )
            annotations.append(AnnotationFormat(name=entry[0], description=entry[1]))

        options = getattr(decoder_cls, "options", {})
        if not isinstance(options, Mapping) or not all(isinstance(key, str) for key in options):
            raise DecoderLoadError(f"Decoder {decoder_id} options must map names to defaults.")

        return cls(
            id=decoder_id,
            name=name,
            longname=getattr(decoder_cls, "longname", ""),
            desc=getattr(decoder_cls, "desc", ""),
            license=getattr(decoder_cls, "license", ""),
            inputs=_string_tuple(decoder_id, "inputs", getattr(decoder_cls, "inputs", ())),
            outputs=_string_tuple(decoder_id, "outputs", getattr(decoder_cls, "outputs", ())),
            annotations=tuple(annotations),
            options=dict(options),
        )


def _string_tuple(decoder_id: str, attribute: str, values: Sequence[Any]) -> Tuple[str, ...]:
    if isinstance(values, str) or not all(isinstance(value, str) for value in values):
        raise DecoderLoadError(f"Decoder {decoder_id} '{attribute}' must be a list of strings.")
    return tuple(values)


class Decoder:
    """Base class for protocol decoders.

    Subclasses declare their metadata as class attributes and implement
    ``decode``. ``add`` and ``put`` are provided by the engine once the
    decoder is bound to a session instance.
    """

    OUTPUT_ANN: ClassVar[int] = OutputType.ANN
    OUTPUT_PROTO: ClassVar[int] = OutputType.PROTO
    OUTPUT_BINARY: ClassVar[int] = OutputType.BINARY

    id: ClassVar[str] = ""
    name: ClassVar[str] = ""
    longname: ClassVar[str] = ""
    desc: ClassVar[str] = ""
    license: ClassVar[str] = ""
    inputs: ClassVar[Sequence[str]] = ()
    outputs: ClassVar[Sequence[str]] = ()
    annotations: ClassVar[Sequence[Sequence[str]]] = ()
    options: ClassVar[Mapping[str, Any]] = {}

    def __init__(self) -> None:
        self._engine: Optional["DispatchEngine"] = None
        self._instance: Optional["DecoderInstance"] = None
        self.option_values: Dict[str, Any] = {}

    def bind(self, engine: "DispatchEngine", instance: "DecoderInstance") -> None:
        self._engine = engine
        self._instance = instance
        self.option_values = dict(instance.options)

    def start(self) -> None:
        """Hook invoked when the session starts; declare outputs here."""

    def decode(self, start_sample: int, end_sample: int, data: Any) -> None:
        raise NotImplementedError

    def add(self, output_type: int, protocol_id: str) -> Optional[int]:
        """Create a new output stream and return its handle (or ``None``)."""

        engine, instance = self._require_instance()
        return engine.add(instance, output_type, protocol_id)

    def put(self, start_sample: int, end_sample: int, output_id: int, data: Any) -> None:
        """Submit one data unit on the output stream ``output_id``."""

        engine, instance = self._require_instance()
        engine.put(instance, start_sample, end_sample, output_id, data)

    def _require_instance(self) -> Tuple["DispatchEngine", "DecoderInstance"]:
        if self._engine is None or self._instance is None:
            raise PluginBoundaryError("decoder instance not found")
        return self._engine, self._instance


__all__ = ["AnnotationFormat", "Decoder", "DecoderSpec"]
