"""Decode session, output registry and dispatch engine."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import Dict, Iterable, Tuple

__all__ = [
    "CallbackRegistry",
    "DecodeSession",
    "DecoderInstance",
    "DispatchEngine",
    "DispatchStats",
    "InstanceConfig",
    "OutputRegistry",
    "OutputStream",
    "OutputType",
    "ProtocolData",
    "SessionConfig",
    "StackConfig",
    "build_session",
    "build_session_config",
    "build_stack_config",
    "convert_annotation",
    "load_stack_config",
]

_EXPORTS: Dict[str, Tuple[str, ...]] = {
    "annotations": ("convert_annotation",),
    "callbacks": ("CallbackRegistry",),
    "config": (
        "InstanceConfig",
        "SessionConfig",
        "StackConfig",
        "build_session_config",
        "build_stack_config",
        "load_stack_config",
    ),
    "dispatch": ("DispatchEngine", "DispatchStats", "ProtocolData"),
    "instance": ("DecoderInstance",),
    "outputs": ("OutputRegistry", "OutputStream", "OutputType"),
    "session": ("DecodeSession", "build_session"),
}


def _load_module(name: str) -> ModuleType:
    return importlib.import_module(f"stacked_protocol_decoder.session.{name}")


def __getattr__(name: str):
    for module_name, symbols in _EXPORTS.items():
        if name in symbols:
            module = _load_module(module_name)
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> Iterable[str]:
    return sorted(set(__all__))
