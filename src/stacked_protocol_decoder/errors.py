"""Exception hierarchy shared by the session, registry and dispatch engine."""

from __future__ import annotations

from typing import Any


class DecoderError(Exception):
    """Base class for every error raised by the decoding engine."""


class PluginBoundaryError(DecoderError, TypeError):
    """A decoder called ``add``/``put`` with arguments of the wrong shape."""


class SessionStateError(DecoderError):
    """The session was asked to do something its current state forbids."""


class DecoderLoadError(DecoderError):
    """A decoder class could not be registered or looked up."""


class DecodeError(DecoderError):
    """A root decoder raised while being fed samples."""

    def __init__(self, instance_id: str, cause: BaseException) -> None:
        self.instance_id = instance_id
        self.cause = cause
        super().__init__(f"Decoder instance {instance_id} failed in decode(): {cause!r}")


class DispatchError(DecoderError):
    """Failure contained inside a single emission; logged and dropped."""


class InvalidHandleError(DispatchError):
    def __init__(self, instance_id: str, handle: int) -> None:
        self.instance_id = instance_id
        self.handle = handle
        super().__init__(f"Instance {instance_id} has no output stream with ID {handle}.")


class MalformedAnnotationError(DispatchError):
    """Annotation payload failed structural validation."""


class UnsupportedOutputTypeError(DispatchError):
    pass


class UnknownOutputTypeError(DispatchError):
    def __init__(self, decoder_name: str, output_type: Any) -> None:
        self.decoder_name = decoder_name
        self.output_type = output_type
        super().__init__(
            f"Protocol decoder {decoder_name} submitted invalid output type {output_type!r}."
        )


class SuccessorFailure(DispatchError):
    """A stacked decoder raised from ``decode`` while receiving protocol data."""

    def __init__(self, instance_id: str, cause: BaseException) -> None:
        self.instance_id = instance_id
        self.cause = cause
        super().__init__(f"calling {instance_id} decode(): {cause!r}")


__all__ = [
    "DecodeError",
    "DecoderError",
    "DecoderLoadError",
    "DispatchError",
    "InvalidHandleError",
    "MalformedAnnotationError",
    "PluginBoundaryError",
    "SessionStateError",
    "SuccessorFailure",
    "UnknownOutputTypeError",
    "UnsupportedOutputTypeError",
]
