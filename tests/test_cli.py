"""
Tests for the command line.
"""

from __future__ import annotations

import asyncio
import logging

import orjson
import pytest
from typer.testing import CliRunner

from matbook.cli import _fatal_hook, _loop_fatal_handler, _serve, cli

runner = CliRunner()


class TestSchemaCommand:
    def test_prints_default_schema(self) -> None:
        result = runner.invoke(cli, ["schema"])
        assert result.exit_code == 0
        assert orjson.loads(result.stdout)["title"] == "Employee Onboarding"

    def test_invalid_schema_file(self, tmp_path) -> None:
        path = tmp_path / "schema.json"
        path.write_bytes(orjson.dumps({"title": "T", "fields": [{"id": "x"}]}))
        result = runner.invoke(cli, ["schema", "--path", str(path)])
        assert result.exit_code == 1


class TestCheckCommand:
    def test_valid_record(self, tmp_path, valid_record) -> None:
        path = tmp_path / "record.json"
        path.write_bytes(orjson.dumps(valid_record))
        result = runner.invoke(cli, ["check", str(path)])
        assert result.exit_code == 0
        assert "OK" in result.stdout

    def test_invalid_record(self, tmp_path) -> None:
        path = tmp_path / "record.json"
        path.write_bytes(orjson.dumps({"age": 99}))
        result = runner.invoke(cli, ["check", str(path)])
        assert result.exit_code == 1
        errors = orjson.loads(result.stdout)
        assert errors["age"] == "Max value is 65"
        assert errors["fullName"] == "Full Name is required"

    def test_record_must_be_object(self, tmp_path) -> None:
        path = tmp_path / "record.json"
        path.write_bytes(b"[1, 2]")
        result = runner.invoke(cli, ["check", str(path)])
        assert result.exit_code == 1


class TestFatalHandlers:
    def test_excepthook_exits_with_status_one(self, caplog) -> None:
        error = RuntimeError("boot failed")
        with caplog.at_level(logging.CRITICAL, logger="matbook"):
            with pytest.raises(SystemExit) as excinfo:
                _fatal_hook(RuntimeError, error, None)
        assert excinfo.value.code == 1
        assert "UNCAUGHT EXCEPTION" in caplog.text

    def test_loop_error_exits_with_status_one(self, monkeypatch, caplog) -> None:
        codes: list[int] = []
        monkeypatch.setattr("matbook.cli.os._exit", codes.append)
        context = {"message": "Task exception was never retrieved", "exception": ValueError("bad")}
        loop = asyncio.new_event_loop()
        try:
            with caplog.at_level(logging.CRITICAL, logger="matbook"):
                _loop_fatal_handler(loop, context)
        finally:
            loop.close()
        assert codes == [1]
        assert "UNHANDLED ASYNC ERROR" in caplog.text
        assert "ValueError: bad" in caplog.text

    def test_serve_installs_loop_handler(self) -> None:
        seen = []

        class FakeServer:
            async def serve(self) -> None:
                seen.append(asyncio.get_running_loop().get_exception_handler())

        asyncio.run(_serve(FakeServer()))
        assert seen == [_loop_fatal_handler]
