"""Session and decoder-stack configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml


@dataclass(slots=True)
class SessionConfig:
    """Runtime knobs of a decode session."""

    unitsize: int = 1  # bytes per logic sample
    allow_duplicate_outputs: bool = True
    max_outputs_per_instance: Optional[int] = None
    enforce_sample_order: bool = True  # reject put() with start > end

    def __post_init__(self) -> None:
        if self.unitsize not in (1, 2, 4, 8):
            raise ValueError(f"unitsize must be one of 1, 2, 4, 8; got {self.unitsize}.")
        if self.max_outputs_per_instance is not None and self.max_outputs_per_instance < 0:
            raise ValueError("max_outputs_per_instance must be non-negative.")


@dataclass(slots=True)
class InstanceConfig:
    """One decoder instance to create in a session."""

    decoder: str
    instance_id: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class StackConfig:
    """Decoder instances plus the (lower, upper) stacking edges between them."""

    session: SessionConfig = field(default_factory=SessionConfig)
    instances: Tuple[InstanceConfig, ...] = tuple()
    stack: Tuple[Tuple[str, str], ...] = tuple()


def build_session_config(overrides: Optional[Mapping[str, Any]] = None) -> SessionConfig:
    """Build a :class:`SessionConfig`, rejecting keys it does not know."""

    payload = dict(overrides or {})
    known = {item.name for item in fields(SessionConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown session config keys: {', '.join(unknown)}")
    return SessionConfig(**payload)


def build_stack_config(payload: Mapping[str, Any]) -> StackConfig:
    session = build_session_config(payload.get("session"))

    instances = []
    for index, entry in enumerate(payload.get("instances") or ()):
        if not isinstance(entry, Mapping) or "decoder" not in entry:
            raise ValueError(f"instances[{index}] must be a mapping with a 'decoder' key.")
        options = entry.get("options") or {}
        if not isinstance(options, Mapping):
            raise ValueError(f"instances[{index}].options must be a mapping.")
        instances.append(
            InstanceConfig(
                decoder=str(entry["decoder"]),
                instance_id=entry.get("instance_id"),
                options=dict(options),
            )
        )

    edges = []
    for index, edge in enumerate(payload.get("stack") or ()):
        if not isinstance(edge, Sequence) or isinstance(edge, str) or len(edge) != 2:
            raise ValueError(f"stack[{index}] must be a [lower, upper] pair.")
        edges.append((str(edge[0]), str(edge[1])))

    return StackConfig(session=session, instances=tuple(instances), stack=tuple(edges))


def load_stack_config(path: Path) -> StackConfig:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Stack config {path} must contain a mapping at the top level.")
    return build_stack_config(payload)


__all__ = [
    "InstanceConfig",
    "SessionConfig",
    "StackConfig",
    "build_session_config",
    "build_stack_config",
    "load_stack_config",
]
