"""
CLI, configuration and export tests.
"""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from fixed_width_file_parser.cli import build_parser, main
from fixed_width_file_parser.config import ParserSettings
from fixed_width_file_parser.errors import ExportError, InvalidArgument
from fixed_width_file_parser.exporters import (
    JsonlWriter,
    export_to_excel,
    load_jsonl,
    records_to_frame,
    save_jsonl,
)
from fixed_width_file_parser.layout import validate_fields


@pytest.fixture
def layout_file(tmp_path: Path) -> Path:
    path = tmp_path / "layout.json"
    path.write_text(
        json.dumps(
            [
                {"name": "first", "position": [0, 4]},
                {"name": "last", "position": [5, 10]},
            ]
        ),
        encoding="utf-8",
    )
    return path


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


class TestParserSettings:
    def test_defaults(self, monkeypatch):
        for name in ("FIXED_WIDTH_BATCH_SIZE", "FIXED_WIDTH_FORCE_UTF8", "FIXED_WIDTH_INPUT_ENCODING"):
            monkeypatch.delenv(name, raising=False)
        settings = ParserSettings.from_env()
        assert settings == ParserSettings(batch_size=1000, force_utf8_encoding=True, input_encoding="latin-1")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FIXED_WIDTH_BATCH_SIZE", "250")
        monkeypatch.setenv("FIXED_WIDTH_FORCE_UTF8", "false")
        monkeypatch.setenv("FIXED_WIDTH_INPUT_ENCODING", "cp1252")
        settings = ParserSettings.from_env()
        assert settings.batch_size == 250
        assert settings.force_utf8_encoding is False
        assert settings.input_encoding == "cp1252"

    def test_invalid_batch_size(self, monkeypatch):
        monkeypatch.setenv("FIXED_WIDTH_BATCH_SIZE", "many")
        with pytest.raises(InvalidArgument):
            ParserSettings.from_env()

    def test_settings_feed_cli_defaults(self):
        parser = build_parser(ParserSettings(batch_size=7, force_utf8_encoding=False))
        args = parser.parse_args(
            ["parse", "--layout", "l.json", "--input", "i.txt", "--output-jsonl", "o.jsonl", "--batch-size"]
        )
        assert args.batch_size == 7
        assert args.force_utf8 is False


# ═══════════════════════════════════════════════════════════════════════════════
# EXPORTERS
# ═══════════════════════════════════════════════════════════════════════════════


class TestExporters:
    def test_jsonl_round_trip(self, tmp_path):
        output = tmp_path / "out" / "records.jsonl"
        records = [{"first": "John", "last": "Doe"}, {"first": "Al", "last": None}]
        assert save_jsonl(iter(records), output) == 2
        assert load_jsonl(output) == records

    def test_jsonl_writer_requires_context(self, tmp_path):
        writer = JsonlWriter(tmp_path / "records.jsonl")
        with pytest.raises(RuntimeError):
            writer({"first": "John"})

    def test_frame_follows_layout_order(self):
        layout = validate_fields([{"name": "b", "position": 1}, {"name": "a", "position": 0}])
        frame = records_to_frame([{"a": "x"}], layout)
        assert list(frame.columns) == ["b", "a"]

    def test_excel_export(self, tmp_path):
        output = tmp_path / "records.xlsx"
        export_to_excel([{"first": "John", "last": "Doe"}, {"first": "Al", "last": None}], output)
        frame = pd.read_excel(output, engine="openpyxl")
        assert list(frame.columns) == ["first", "last"]
        assert frame["first"].tolist() == ["John", "Al"]

    def test_excel_export_requires_records(self, tmp_path):
        with pytest.raises(ExportError):
            export_to_excel([], tmp_path / "records.xlsx")


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCli:
    def test_parse_command(self, tmp_path, layout_file):
        source = tmp_path / "input.txt"
        source.write_bytes(b"John Doe  \n\nAl\n")
        output = tmp_path / "records.jsonl"

        code = main(
            ["parse", "--layout", str(layout_file), "--input", str(source), "--output-jsonl", str(output)]
        )

        assert code == 0
        assert load_jsonl(output) == [{"first": "John", "last": "Doe"}, {"first": "Al", "last": None}]

    def test_parse_command_in_batches(self, tmp_path, layout_file):
        source = tmp_path / "input.txt"
        source.write_bytes(b"FIRS LAST\nJohn Doe\nJane Roe\nAl\n")
        output = tmp_path / "records.jsonl"

        code = main(
            [
                "parse",
                "--layout",
                str(layout_file),
                "--input",
                str(source),
                "--output-jsonl",
                str(output),
                "--batch-size",
                "2",
            ]
        )

        assert code == 0
        assert [record["first"] for record in load_jsonl(output)] == ["John", "Jane", "Al"]

    def test_parse_command_missing_input(self, tmp_path, layout_file):
        with pytest.raises(FileNotFoundError):
            main(
                [
                    "parse",
                    "--layout",
                    str(layout_file),
                    "--input",
                    str(tmp_path / "missing.txt"),
                    "--output-jsonl",
                    str(tmp_path / "records.jsonl"),
                ]
            )

    def test_failed_parse_keeps_previous_output(self, tmp_path, layout_file):
        output = tmp_path / "records.jsonl"
        output.write_text('{"first": "previous"}\n', encoding="utf-8")

        with pytest.raises(FileNotFoundError):
            main(
                [
                    "parse",
                    "--layout",
                    str(layout_file),
                    "--input",
                    str(tmp_path / "missing.txt"),
                    "--output-jsonl",
                    str(output),
                ]
            )

        assert load_jsonl(output) == [{"first": "previous"}]
        assert sorted(path.name for path in tmp_path.iterdir()) == ["layout.json", "records.jsonl"]

    def test_bad_env_setting_exit_code(self, monkeypatch, layout_file, capsys):
        monkeypatch.setenv("FIXED_WIDTH_BATCH_SIZE", "many")

        code = main(["check-layout", "--layout", str(layout_file)])

        assert code == 2
        assert "FIXED_WIDTH_BATCH_SIZE" in capsys.readouterr().err

    def test_missing_layout_exit_code(self, tmp_path, capsys):
        code = main(["check-layout", "--layout", str(tmp_path / "missing.json")])

        assert code == 2
        assert "cannot be read" in capsys.readouterr().err

    def test_excel_command_empty_input_exit_code(self, tmp_path, capsys):
        records = tmp_path / "records.jsonl"
        records.write_text("", encoding="utf-8")

        code = main(["excel", "--input-jsonl", str(records), "--output-xlsx", str(tmp_path / "out.xlsx")])

        assert code == 2
        assert "No records" in capsys.readouterr().err

    def test_invalid_layout_exit_code(self, tmp_path, capsys):
        layout = tmp_path / "layout.json"
        layout.write_text("[]", encoding="utf-8")

        code = main(["check-layout", "--layout", str(layout)])

        assert code == 2
        assert "at least 1 item" in capsys.readouterr().err

    def test_check_layout_prints_fields(self, layout_file, capsys):
        code = main(["check-layout", "--layout", str(layout_file)])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload == [{"name": "first", "position": [0, 4]}, {"name": "last", "position": [5, 10]}]

    def test_excel_command(self, tmp_path, layout_file):
        records = tmp_path / "records.jsonl"
        save_jsonl([{"last": "Doe", "first": "John"}], records)
        output = tmp_path / "records.xlsx"

        code = main(
            ["excel", "--input-jsonl", str(records), "--output-xlsx", str(output), "--layout", str(layout_file)]
        )

        assert code == 0
        assert list(pd.read_excel(output, engine="openpyxl").columns) == ["first", "last"]
