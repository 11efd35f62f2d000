"""Host callback table, one slot per output kind."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Optional

from ..errors import SessionStateError
from .outputs import OutputType

if TYPE_CHECKING:
    from .dispatch import ProtocolData

OutputCallback = Callable[["ProtocolData"], None]


class CallbackRegistry:
    """At most one callback per output kind, fixed before decoding begins."""

    def __init__(self) -> None:
        self._callbacks: Dict[OutputType, OutputCallback] = {}
        self._frozen = False

    def register(self, output_type: int, callback: OutputCallback) -> None:
        if self._frozen:
            raise SessionStateError("Callbacks cannot be registered once decoding has started.")
        try:
            kind = OutputType(output_type)
        except ValueError as exc:
            raise ValueError(f"Unknown output type: {output_type!r}") from exc
        if not callable(callback):
            raise TypeError("callback must be callable.")
        if kind in self._callbacks:
            raise SessionStateError(f"A callback for {kind.name} output is already registered.")
        self._callbacks[kind] = callback

    def find(self, output_type: int) -> Optional[OutputCallback]:
        try:
            return self._callbacks.get(OutputType(output_type))
        except ValueError:
            return None

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen


__all__ = ["CallbackRegistry", "OutputCallback"]
