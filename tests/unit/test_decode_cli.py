"""Tests for the decode CLI helpers."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from scripts import decode as decode_cli
from stacked_protocol_decoder.session.config import load_stack_config
from stacked_protocol_decoder.session.dispatch import ProtocolData
from stacked_protocol_decoder.session.outputs import OutputStream, OutputType
from stacked_protocol_decoder.session.session import build_session

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_annotation_record_flattens_the_unit() -> None:
    unit = ProtocolData(
        start_sample=4,
        end_sample=12,
        output=OutputStream(OutputType.ANN, "bytes", "bytes", 0),
        ann_format=0,
        data=("41", "0x41"),
    )
    assert decode_cli.annotation_record(unit) == {
        "instance": "bytes",
        "protocol": "bytes",
        "start": 4,
        "end": 12,
        "format": 0,
        "texts": ["41", "0x41"],
    }


def test_parse_args_validates_chunk_size() -> None:
    with pytest.raises(SystemExit):
        decode_cli.parse_args(["--config", "a.yaml", "--input", "b.bin", "--chunk-size", "0"])
    args = decode_cli.parse_args(["--config", "a.yaml", "--input", "b.bin"])
    assert args.chunk_size == 4096
    assert args.module == []


def test_main_writes_json_lines(tmp_path: Path, monkeypatch) -> None:
    cli_logger = logging.getLogger("stacked protocol decoder.cli")
    monkeypatch.setattr(decode_cli, "configure_logging", lambda level: cli_logger)
    samples = tmp_path / "samples.bin"
    # 'A' then 'Z', one bit per sample, MSB first.
    bits = [int(bit) for byte in (0x41, 0x5A) for bit in f"{byte:08b}"]
    samples.write_bytes(bytes(bits))
    output = tmp_path / "out" / "annotations.jsonl"

    exit_code = decode_cli.main(
        [
            "--config",
            str(REPO_ROOT / "configs" / "bits_to_bytes.yaml"),
            "--input",
            str(samples),
            "--output",
            str(output),
            "--chunk-size",
            "5",
        ]
    )

    assert exit_code == 0
    records = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    byte_records = [record for record in records if record["instance"] == "bytes"]
    assert [record["texts"][0] for record in byte_records] == ["41", "5A"]
    assert [(record["start"], record["end"]) for record in byte_records] == [(0, 8), (8, 16)]
    bit_records = [r for r in records if r["instance"] == "bits" and r["format"] == 0]
    assert len(bit_records) == 16


def test_run_writes_annotations_while_decoding(tmp_path: Path, monkeypatch) -> None:
    samples = tmp_path / "samples.bin"
    samples.write_bytes(bytes(int(bit) for bit in f"{0x41:08b}{0x5A:08b}"))
    session = build_session(load_stack_config(REPO_ROOT / "configs" / "bits_to_bytes.yaml"))
    handle = io.StringIO()
    lines_seen: list[int] = []
    original_iter_chunks = decode_cli.iter_chunks

    def tracking_chunks(path: Path, chunk_bytes: int):
        for chunk in original_iter_chunks(path, chunk_bytes):
            lines_seen.append(handle.getvalue().count("\n"))
            yield chunk

    monkeypatch.setattr(decode_cli, "iter_chunks", tracking_chunks)

    count = decode_cli.run(session, samples, handle, chunk_size=8, start_sample=0)

    lines = handle.getvalue().splitlines()
    assert count == len(lines)
    # The first byte is on disk before the second chunk is read.
    assert lines_seen[0] == 0 and lines_seen[1] > 0
    early = [json.loads(line) for line in lines[: lines_seen[1]]]
    assert ["41", "0x41"] in [record["texts"] for record in early]
