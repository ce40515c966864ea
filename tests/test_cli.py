# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the s3object command-line interface."""

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from s3object.cli import main
from s3object.transport import Response
from tests.conftest import FakeTransport
from tests.vectors import ACCESS_KEY_ID, BUCKET, SECRET_ACCESS_KEY


@dataclass
class ContextTransport(FakeTransport):
    """FakeTransport usable as ``with HttpxTransport() as transport``."""

    error: Exception | None = None
    error_method: str | None = None
    closed: bool = False

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> Response:
        if self.error is not None and self.error_method in (None, method):
            raise self.error
        return super().send(method, url, headers, body)

    def __enter__(self) -> "ContextTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "s3object.yaml"
    path.write_text(
        f"access_key_id: {ACCESS_KEY_ID}\n"
        f"access_key: {SECRET_ACCESS_KEY}\n"
        f"bucket: {BUCKET}\n"
    )
    return path


@pytest.fixture
def fake() -> Iterator[ContextTransport]:
    transport = ContextTransport()
    with patch("s3object.cli.HttpxTransport", return_value=transport):
        yield transport


def _run(config_file: Path, *args: str) -> int:
    return main(["--config", str(config_file), *args])


class TestInit:
    """Tests for the init command."""

    def test_creates_stub(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "sub" / "s3object.yaml"
        assert main(["--config", str(path), "init"]) == 0
        assert "access_key: !env S3OBJECT_ACCESS_KEY" in path.read_text()
        assert "Created stub config" in capsys.readouterr().out

    def test_existing_left_alone(
        self, config_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        before = config_file.read_text()
        assert _run(config_file, "init") == 0
        assert config_file.read_text() == before
        assert "already exists" in capsys.readouterr().out


class TestConfigErrors:
    """Configuration problems exit with code 2."""

    def test_missing_config_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = main(["--config", str(tmp_path / "nope.yaml"), "url", "k"])
        assert code == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_environment_fallback(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        fake: ContextTransport,
    ) -> None:
        """Without a config file, S3OBJECT_* variables are used."""
        environ = {
            k: v
            for k, v in os.environ.items()
            if not k.startswith("S3OBJECT_")
        }
        environ.update(
            {
                "S3OBJECT_ACCESS_KEY_ID": "AKID",
                "S3OBJECT_ACCESS_KEY": "secret",
                "S3OBJECT_BUCKET": "envbucket",
            }
        )
        monkeypatch.setattr(os, "environ", environ)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "s3object.cli.get_config_path", lambda: tmp_path / "none.yaml"
        )
        monkeypatch.setattr(
            "s3object.config.get_dotenv_path", lambda: tmp_path / "none.env"
        )
        assert main(["url", "a.txt"]) == 0
        out = capsys.readouterr().out.strip()
        assert out == "https://envbucket.s3.amazonaws.com/a.txt"


class TestUrl:
    def test_prints_object_url(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _run(config_file, "url", "photos/cat.jpg") == 0
        assert capsys.readouterr().out.strip() == (
            "https://examplebucket.s3.amazonaws.com/photos/cat.jpg"
        )
        assert fake.sent == []
        assert fake.closed


class TestGet:
    """Tests for the get command."""

    def test_to_file(
        self, config_file: Path, tmp_path: Path, fake: ContextTransport
    ) -> None:
        fake.default = Response(200, body=b"contents")
        out = tmp_path / "out.bin"
        assert _run(config_file, "get", "test.txt", "-o", str(out)) == 0
        assert out.read_bytes() == b"contents"
        assert fake.sent[0].method == "GET"
        assert fake.sent[0].url == (
            "https://examplebucket.s3.amazonaws.com/test.txt"
        )
        assert "authorization" in fake.sent[0].headers

    def test_to_stdout(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsysbinary: pytest.CaptureFixture[bytes],
    ) -> None:
        fake.default = Response(200, body=b"\x00\x01raw")
        assert _run(config_file, "get", "blob") == 0
        assert capsysbinary.readouterr().out == b"\x00\x01raw"

    def test_not_found(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake.default = Response(404, body=b"<Error/>")
        assert _run(config_file, "get", "missing") == 1
        assert "HTTP 404" in capsys.readouterr().err

    def test_transport_error(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake.error = httpx.ConnectError("connection refused")
        assert _run(config_file, "get", "k") == 1
        assert "Transport error" in capsys.readouterr().err
        assert fake.closed


class TestPut:
    """Tests for the put command."""

    def test_uploads_file(
        self, config_file: Path, tmp_path: Path, fake: ContextTransport
    ) -> None:
        src = tmp_path / "notes.txt"
        src.write_bytes(b"hello")
        assert _run(config_file, "put", "notes.txt", str(src)) == 0

        sent = fake.sent[0]
        assert sent.method == "PUT"
        assert sent.body == b"hello"
        assert sent.headers["content-type"] == "text/plain"
        assert sent.headers["content-length"] == "5"

    def test_explicit_content_type(
        self, config_file: Path, tmp_path: Path, fake: ContextTransport
    ) -> None:
        src = tmp_path / "data"
        src.write_bytes(b"{}")
        code = _run(
            config_file,
            "put",
            "data.json",
            str(src),
            "--content-type",
            "application/json",
        )
        assert code == 0
        assert fake.sent[0].headers["content-type"] == "application/json"

    def test_missing_file(
        self,
        config_file: Path,
        tmp_path: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = _run(config_file, "put", "k", str(tmp_path / "absent"))
        assert code == 2
        assert "Error" in capsys.readouterr().err
        assert fake.sent == []


class TestDeleteCopyMove:
    """Tests for delete, copy and move."""

    def test_delete_success(
        self, config_file: Path, fake: ContextTransport
    ) -> None:
        fake.default = Response(204)
        assert _run(config_file, "delete", "old.txt") == 0
        assert fake.sent[0].method == "DELETE"

    def test_delete_requires_204(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake.default = Response(200)
        assert _run(config_file, "delete", "old.txt") == 1
        assert "HTTP 200" in capsys.readouterr().err

    def test_copy(self, config_file: Path, fake: ContextTransport) -> None:
        assert _run(config_file, "copy", "a.txt", "b.txt") == 0
        sent = fake.sent[0]
        assert sent.method == "PUT"
        assert sent.url.endswith("/b.txt")
        assert sent.headers["x-amz-copy-source"] == f"{BUCKET}/a.txt"

    def test_move(self, config_file: Path, fake: ContextTransport) -> None:
        fake.responses = [Response(200), Response(204)]
        assert _run(config_file, "move", "a.txt", "b.txt") == 0
        assert [r.method for r in fake.sent] == ["PUT", "DELETE"]

    def test_move_copy_rejected(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake.responses = [Response(403)]
        assert _run(config_file, "move", "a.txt", "b.txt") == 1
        assert len(fake.sent) == 1
        assert "HTTP 403" in capsys.readouterr().err

    def test_move_delete_rejected_warns(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """The move still succeeds; the leftover source is reported."""
        fake.responses = [Response(200), Response(403)]
        assert _run(config_file, "move", "a.txt", "b.txt") == 0
        assert "was not deleted (HTTP 403)" in capsys.readouterr().err

    def test_move_delete_connection_error_warns(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A copied object counts as moved when the delete cannot connect."""
        fake.responses = [Response(200)]
        fake.error = httpx.ConnectError("connection reset")
        fake.error_method = "DELETE"
        assert _run(config_file, "move", "a.txt", "b.txt") == 0
        err = capsys.readouterr().err
        assert "was not deleted (connection reset)" in err
        assert "Transport error" not in err


class TestPolicy:
    """Tests for the policy command."""

    def test_prints_form_fields(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = _run(
            config_file,
            "policy",
            "uploads/a.png",
            "--content-type",
            "image/png",
            "--max-size",
            "1048576",
        )
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["url"] == "https://examplebucket.s3.amazonaws.com/"
        fields = output["fields"]
        assert fields["key"] == "uploads/a.png"
        assert fields["content-type"] == "image/png"
        assert fields["x-amz-algorithm"] == "AWS4-HMAC-SHA256"
        assert len(fields["x-amz-signature"]) == 64
        assert fake.sent == []

    def test_negative_max_size(
        self,
        config_file: Path,
        fake: ContextTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = _run(
            config_file,
            "policy",
            "k",
            "--content-type",
            "text/plain",
            "--max-size=-1",
        )
        assert code == 2
        assert "max_size" in capsys.readouterr().err
