"""Decoder base class, metadata and registry."""

from .base import AnnotationFormat, Decoder, DecoderSpec
from .registry import DecoderRegistry, default_registry

__all__ = [
    "AnnotationFormat",
    "Decoder",
    "DecoderRegistry",
    "DecoderSpec",
    "default_registry",
]
