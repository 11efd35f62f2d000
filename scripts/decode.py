# ruff: noqa: E402
"""Run a stack of protocol decoders over a raw logic sample file."""

from __future__ import annotations

# Ensure local src/ is on sys.path when running from the repo without installation
import os as _os
import sys as _sys

_REPO_ROOT = _os.path.abspath(_os.path.join(_os.path.dirname(__file__), ".."))
_SRC_PATH = _os.path.join(_REPO_ROOT, "src")
if _SRC_PATH not in _sys.path and _os.path.isdir(_SRC_PATH):
    _sys.path.insert(0, _SRC_PATH)

import argparse
import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Sequence, TextIO

from stacked_protocol_decoder.decoders import default_registry
from stacked_protocol_decoder.session.config import load_stack_config
from stacked_protocol_decoder.session.dispatch import ProtocolData
from stacked_protocol_decoder.session.outputs import OutputType
from stacked_protocol_decoder.session.session import DecodeSession, build_session
from stacked_protocol_decoder.utils import configure_logging, load_repo_dotenv, resolve_log_level


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="YAML file listing decoder instances and how they are stacked.",
    )
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Raw logic samples, unitsize bytes per sample, little endian.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write annotations as JSON lines here instead of stdout.",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=4096,
        help="Number of samples fed to the session per send() call.",
    )
    parser.add_argument(
        "--start-sample",
        type=int,
        default=0,
        help="Sample number assigned to the first sample in the file.",
    )
    parser.add_argument(
        "--module",
        action="append",
        default=[],
        help="Extra decoder module to load (may be repeated).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level; defaults to $STACKED_DECODER_LOG_LEVEL or INFO.",
    )
    args = parser.parse_args(argv)
    if args.chunk_size <= 0:
        parser.error("--chunk-size must be positive.")
    if args.start_sample < 0:
        parser.error("--start-sample must be non-negative.")
    return args


def annotation_record(unit: ProtocolData) -> Dict[str, Any]:
    return {
        "instance": unit.output.instance_id,
        "protocol": unit.output.protocol_id,
        "start": unit.start_sample,
        "end": unit.end_sample,
        "format": unit.ann_format,
        "texts": list(unit.data),
    }


def iter_chunks(path: Path, chunk_bytes: int) -> Iterator[bytes]:
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_bytes)
            if not chunk:
                return
            yield chunk


def run(
    session: DecodeSession,
    path: Path,
    handle: TextIO,
    *,
    chunk_size: int,
    start_sample: int,
) -> int:
    """Decode ``path`` and write one JSON line per annotation as it is emitted.

    Returns the number of annotations written.
    """

    written = 0

    def emit(unit: ProtocolData) -> None:
        nonlocal written
        handle.write(json.dumps(annotation_record(unit)) + "\n")
        written += 1

    session.register_callback(OutputType.ANN, emit)
    session.start()
    sample = start_sample
    for chunk in iter_chunks(path, chunk_size * session.config.unitsize):
        sample = session.send(sample, chunk)
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_repo_dotenv()
    args = parse_args(argv)
    logger = configure_logging(resolve_log_level(args.log_level))

    registry = default_registry()
    for module_name in args.module:
        registry.load_module(module_name)
    session = build_session(load_stack_config(args.config), registry=registry)

    options = dict(chunk_size=args.chunk_size, start_sample=args.start_sample)
    if args.output is None:
        count = run(session, args.input, _sys.stdout, **options)
    else:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8") as handle:
            count = run(session, args.input, handle, **options)

    logger.info(
        "Decoded %d annotations (%d emissions dropped, %d successor failures)",
        count,
        session.stats.dropped,
        session.stats.successor_failures,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
