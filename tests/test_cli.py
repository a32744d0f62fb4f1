"""Tests for the command-line interface."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from dependency_heartbeat import cli
from dependency_heartbeat.models import RawStatus


GO_MOD = """\
module github.com/example/project

go 1.22

require (
\tgithub.com/active/repo v1.0.0
\tgithub.com/old/repo v1.0.0
\tgithub.com/notfound/repo v1.0.0
\tgithub.com/indirect/repo v1.0.0 // indirect
)
"""


class FakeStatusClient:
    instances = []

    def __init__(self, source=None, session=None, timeout=None, token=None):
        self.source = source
        self.timeout = timeout
        self.token = token
        self.fetched = []
        FakeStatusClient.instances.append(self)

    def fetch(self, path, dependency=None):
        self.fetched.append(path)
        now = datetime.now(timezone.utc)
        if path == "github.com/old/repo":
            return RawStatus(dependency, 200, now - timedelta(days=3 * 365))
        if path == "github.com/notfound/repo":
            return RawStatus(dependency, 404)
        return RawStatus(dependency, 200, now - timedelta(days=60))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        pass


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "go.mod").write_text(GO_MOD, encoding="utf-8")
    FakeStatusClient.instances = []
    monkeypatch.setattr(cli, "StatusClient", FakeStatusClient)
    return tmp_path


def test_text_output(project: Path, capsys):
    cli.main([str(project)])

    out = capsys.readouterr().out
    assert "Module: github.com/example/project" in out
    assert "[Archived (Not found at status source)]" in out
    assert "Archived (Dead) Direct Dependencies:" in out
    assert "- Total Dependencies: 4" in out
    assert "- Direct Dependencies: 3" in out
    assert "- Unmaintained Dependencies: 2" in out
    assert "github.com/indirect/repo" not in FakeStatusClient.instances[0].fetched


def test_json_output_is_clean(project: Path, capsys):
    cli.main(["--json", str(project)])

    captured = capsys.readouterr()
    report = json.loads(captured.out)
    assert report["totalDependencies"] == 4
    assert report["directDependencies"] == 3
    assert report["unmaintainedDependencies"] == 2
    assert {d["module_path"] for d in report["deadDirectDependencies"]} == {
        "github.com/old/repo",
        "github.com/notfound/repo",
    }
    assert "Analyzing project at" in captured.err


def test_quiet_and_since(project: Path, capsys):
    cli.main(["--quiet", "--since", "1m", str(project)])

    out = capsys.readouterr().out
    assert "[Active" not in out
    assert "- Unmaintained Dependencies: 3" in out


def test_token_and_timeout_are_passed(project: Path, monkeypatch):
    monkeypatch.setenv(cli.TOKEN_ENV, "secret")

    cli.main(["--quiet", "--timeout", "30", str(project)])

    client = FakeStatusClient.instances[0]
    assert client.token == "secret"
    assert client.timeout == 30
    assert client.source.name == "pkg.go.dev"


def test_csv_export(project: Path, tmp_path: Path):
    csv_file = tmp_path / "report" / "verdicts.csv"

    cli.main(["--quiet", "--csv", str(csv_file), str(project)])

    assert csv_file.exists()
    assert "github.com/old/repo" in csv_file.read_text(encoding="utf-8")


def test_invalid_since_exits(project: Path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--since", "forever", str(project)])

    assert excinfo.value.code == 1
    assert "invalid --since" in capsys.readouterr().err


def test_missing_manifest_exits(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "empty")])

    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_invalid_concurrency_is_rejected(project: Path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--concurrency", "0", str(project)])
    assert excinfo.value.code == 2
