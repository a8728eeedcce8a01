import importlib
import io
import json
import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _stdin(payload) -> io.StringIO:
    return io.StringIO(json.dumps(payload))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("RIMG_LOG_LEVEL", raising=False)
    monkeypatch.delenv("RIMG_LOG_FORMAT", raising=False)
    root = logging.getLogger()
    level = root.level
    yield
    for handler in [item for item in root.handlers if item.get_name() == "rimg"]:
        root.removeHandler(handler)
    root.setLevel(level)


def test_module_invocation_reads_stdin_request() -> None:
    env = {key: value for key, value in os.environ.items() if not key.startswith("RIMG_")}
    result = subprocess.run(
        [sys.executable, "-m", "rimg_cli", "metadata"],
        input=json.dumps({"source": {"repository": "concourse/test", "tag": 7}}),
        capture_output=True,
        text=True,
        cwd=str(PROJECT_ROOT),
        env=env,
        check=False,
    )

    assert result.returncode == 0, result.stderr
    assert json.loads(result.stdout) == [
        {"name": "repository", "value": "concourse/test"},
        {"name": "tag", "value": "7"},
    ]


def test_name_prints_repository_and_default_tag(capsys: pytest.CaptureFixture[str]) -> None:
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["name"], stdin=_stdin({"source": {"repository": "concourse/test"}}))

    assert code == 0
    assert capsys.readouterr().out.strip() == "concourse/test:latest"


def test_format_defaults_to_rootfs(capsys: pytest.CaptureFixture[str]) -> None:
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["format"], stdin=_stdin({"source": {"repository": "r"}, "params": {}}))

    assert code == 0
    assert capsys.readouterr().out.strip() == "rootfs"


def test_metadata_with_additional_tags(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "tags").write_text("a\nb\n", encoding="utf-8")
    request = {
        "source": {"repository": "r", "tag": 2},
        "params": {"image": "image/image.tar", "additional_tags": "tags"},
    }
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(
        ["metadata", "--additional-tags-dir", str(tmp_path)],
        stdin=_stdin(request),
    )

    assert code == 0
    assert json.loads(capsys.readouterr().out) == [
        {"name": "repository", "value": "r"},
        {"name": "tags", "value": "a b 2"},
    ]


def test_notary_config_reads_request_file(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    request_path = tmp_path / "request.json"
    request_path.write_text(
        json.dumps(
            {
                "source": {
                    "repository": "r",
                    "content_trust": {
                        "server": "https://notary.example.com",
                        "repository_key_id": "abc",
                        "repository_key": "KEY",
                        "repository_passphrase": "pw",
                    },
                }
            }
        ),
        encoding="utf-8",
    )
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    cli_main = importlib.import_module("rimg_cli.main")

    code = cli_main.main(["--input", str(request_path), "notary-config", str(scratch)])
    assert code == 0
    assert capsys.readouterr().out.strip() == str(scratch / ".notary")
    assert (scratch / ".notary" / "trust" / "private" / "abc.key").read_text(encoding="utf-8") == "KEY"

    code = cli_main.main(["--input", str(request_path), "notary-config", str(scratch)])
    assert code == 1
    assert "[rimg:notary-config] failed:" in capsys.readouterr().out


def test_notary_config_requires_content_trust(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["notary-config", str(tmp_path)], stdin=_stdin({"source": {"repository": "r"}}))

    assert code == 1
    assert "no content_trust" in capsys.readouterr().out
    assert not (tmp_path / ".notary").exists()


def test_invalid_request_is_reported(capsys: pytest.CaptureFixture[str]) -> None:
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["name"], stdin=io.StringIO('{"source": {"repository": "r", "tag": true}}'))

    assert code == 1
    assert "[rimg:name] invalid request:" in capsys.readouterr().out


def test_metadata_requires_tags_dir_when_params_name_a_file(capsys: pytest.CaptureFixture[str]) -> None:
    request = {"source": {"repository": "r"}, "params": {"additional_tags": "tags"}}
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["metadata"], stdin=_stdin(request))

    assert code == 2
    assert "--additional-tags-dir" in capsys.readouterr().out


def test_request_file_with_invalid_utf8_is_reported(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    request_path = tmp_path / "request.json"
    request_path.write_bytes(b'{"source": {"repository": "\xff"}}')
    cli_main = importlib.import_module("rimg_cli.main")
    code = cli_main.main(["--input", str(request_path), "name"])

    assert code == 1
    assert "[rimg:name] invalid request: request is not valid UTF-8" in capsys.readouterr().out
