"""Validation of annotation payloads submitted through ``Decoder.put``."""

from __future__ import annotations

import numbers
from typing import Any, Sequence, Tuple

from ..errors import MalformedAnnotationError


def convert_annotation(
    decoder_name: str,
    annotation_formats: Sequence[Any],
    value: Any,
) -> Tuple[int, Tuple[str, ...]]:
    """Validate ``[format_id, [text, ...]]`` and return it in normalised form.

    Checks run in a fixed order and the first failing one raises
    :class:`MalformedAnnotationError` with a message naming that check.
    """

    if not isinstance(value, (list, tuple)):
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted {type(value).__name__} instead of list."
        )
    if len(value) != 2:
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted annotation list with "
            f"{len(value)} elements instead of 2"
        )

    ann_id = value[0]
    if not isinstance(ann_id, numbers.Integral) or isinstance(ann_id, bool):
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted annotation list, but first "
            "element was not an integer."
        )
    if ann_id < 0 or ann_id >= len(annotation_formats):
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted data to unregistered "
            f"annotation format {ann_id}."
        )

    texts = value[1]
    if not isinstance(texts, (list, tuple)):
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted annotation list, but "
            "second element was not a list."
        )
    if not all(isinstance(text, str) for text in texts):
        raise MalformedAnnotationError(
            f"Protocol decoder {decoder_name} submitted annotation list, but "
            "second element was malformed."
        )
    return int(ann_id), tuple(texts)


__all__ = ["convert_annotation"]
