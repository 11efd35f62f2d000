"""Lookup table of decoder classes keyed by decoder id."""

from __future__ import annotations

import importlib
import inspect
import logging
from typing import Dict, List, Tuple, Type

from ..errors import DecoderLoadError
from .base import Decoder, DecoderSpec

LOGGER = logging.getLogger("stacked protocol decoder.registry")


class DecoderRegistry:
    """Holds decoder classes together with their validated metadata."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[Type[Decoder], DecoderSpec]] = {}

    def register(self, decoder_cls: Type[Decoder]) -> DecoderSpec:
        if not (inspect.isclass(decoder_cls) and issubclass(decoder_cls, Decoder)):
            raise DecoderLoadError(f"{decoder_cls!r} is not a Decoder subclass.")
        spec = DecoderSpec.from_class(decoder_cls)
        existing = self._entries.get(spec.id)
        if existing is not None and existing[0] is not decoder_cls:
            raise DecoderLoadError(f"Decoder id {spec.id!r} is already registered.")
        self._entries[spec.id] = (decoder_cls, spec)
        LOGGER.debug(
            "Registered decoder %s (%d annotation formats)", spec.id, len(spec.annotations)
        )
        return spec

    def load_module(self, module_name: str) -> DecoderSpec:
        """Import ``module_name`` and register the decoder class it defines.

        A module either exposes a class literally named ``Decoder`` that
        subclasses the base, or exactly one ``Decoder`` subclass defined in it.
        """

        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise DecoderLoadError(f"Could not import decoder module {module_name}: {exc}") from exc

        exported = getattr(module, "Decoder", None)
        if inspect.isclass(exported) and exported is not Decoder and issubclass(exported, Decoder):
            return self.register(exported)

        candidates: List[Type[Decoder]] = [
            value
            for value in vars(module).values()
            if inspect.isclass(value)
            and issubclass(value, Decoder)
            and value is not Decoder
            and value.__module__ == module.__name__
        ]
        if len(candidates) != 1:
            raise DecoderLoadError(
                f"Module {module_name} defines {len(candidates)} decoder classes; expected 1."
            )
        return self.register(candidates[0])

    def get(self, decoder_id: str) -> Tuple[Type[Decoder], DecoderSpec]:
        try:
            return self._entries[decoder_id]
        except KeyError as exc:
            raise DecoderLoadError(f"Unknown decoder id: {decoder_id!r}") from exc

    def ids(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, decoder_id: object) -> bool:
        return decoder_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_BUNDLED_MODULES = (
    "stacked_protocol_decoder.decoders.library.logic_bits",
    "stacked_protocol_decoder.decoders.library.byte_assembler",
)


def default_registry() -> DecoderRegistry:
    """Return a fresh registry holding the bundled decoders."""

    registry = DecoderRegistry()
    for module_name in _BUNDLED_MODULES:
        registry.load_module(module_name)
    return registry


__all__ = ["DecoderRegistry", "default_registry"]
