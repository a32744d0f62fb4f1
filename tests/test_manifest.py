"""Tests for manifest parsing."""

from pathlib import Path

import pytest

from dependency_heartbeat.manifest import (
    ManifestError,
    load_manifest,
    parse_go_mod,
    parse_go_mod_text,
    parse_requirements,
)
from dependency_heartbeat.models import DependencyRef, ModuleInfo


GO_MOD = """\
module github.com/example/project

go 1.21

toolchain go1.21.5

require github.com/single/line v1.0.0

require (
\tgithub.com/direct/one v1.2.3
\tgithub.com/indirect/two v0.4.0 // indirect
\t"github.com/quoted/three" v2.0.0+incompatible
)

replace (
\tgithub.com/direct/one => ../one
)

exclude github.com/old/thing v0.0.1
"""


def test_parse_go_mod_text():
    info = parse_go_mod_text(GO_MOD)

    assert info.module_name == "github.com/example/project"
    assert info.language_version == "1.21"
    assert info.ecosystem == "go"
    assert info.requires == [
        DependencyRef("github.com/single/line", "v1.0.0"),
        DependencyRef("github.com/direct/one", "v1.2.3"),
        DependencyRef("github.com/indirect/two", "v0.4.0", indirect=True),
        DependencyRef("github.com/quoted/three", "v2.0.0+incompatible"),
    ]
    assert info.total_count == 4
    assert info.direct_count == 3


def test_parse_go_mod_reads_project_directory(tmp_path: Path):
    (tmp_path / "go.mod").write_text(GO_MOD, encoding="utf-8")

    assert parse_go_mod(tmp_path).module_name == "github.com/example/project"
    assert load_manifest(tmp_path).ecosystem == "go"
    assert load_manifest(tmp_path / "go.mod").direct_count == 3


def test_missing_go_mod_is_reported(tmp_path: Path):
    with pytest.raises(ManifestError, match="failed to read go.mod"):
        parse_go_mod(tmp_path)


@pytest.mark.parametrize(
    "text",
    [
        "go 1.21\n",
        "module x\nrequire (\n\tgithub.com/a/b v1.0.0\n",
        "module x\nrequire github.com/a/b\n",
    ],
)
def test_malformed_go_mod(text):
    with pytest.raises(ManifestError):
        parse_go_mod_text(text)


def test_parse_requirements(tmp_path: Path):
    project = tmp_path / "demo"
    project.mkdir()
    requirements = project / "requirements.txt"
    requirements.write_text(
        "# comment\n"
        "-r base.txt\n"
        "requests>=2.0  # http\n"
        "\n"
        "pandas\n"
        "urllib3[socks]==1.26.0; python_version < '4'\n",
        encoding="utf-8",
    )

    info = parse_requirements(requirements)

    assert info.module_name == "demo"
    assert info.ecosystem == "pypi"
    assert [(d.path, d.version, d.indirect) for d in info.requires] == [
        ("requests", ">=2.0", False),
        ("pandas", "", False),
        ("urllib3", "==1.26.0", False),
    ]
    assert load_manifest(project).ecosystem == "pypi"


def test_parse_requirements_with_hashes_and_continuations(tmp_path: Path):
    requirements = tmp_path / "requirements.txt"
    requirements.write_text(
        "requests==2.31.0 \\\n"
        "    --hash=sha256:abc \\\n"
        "    --hash=sha256:def\n"
        "idna==3.4 --hash=sha256:123\n"
        "charset-normalizer\\\n"
        ">=3.0\n",
        encoding="utf-8",
    )

    info = parse_requirements(requirements)

    assert [(d.path, d.version) for d in info.requires] == [
        ("requests", "==2.31.0"),
        ("idna", "==3.4"),
        ("charset-normalizer", ">=3.0"),
    ]


def test_parse_requirements_keeps_first_of_repeated_names(tmp_path: Path):
    requirements = tmp_path / "requirements.txt"
    requirements.write_text(
        "numpy<2; python_version < '3.9'\n"
        "requests\n"
        "NumPy>=2; python_version >= '3.9'\n",
        encoding="utf-8",
    )

    info = parse_requirements(requirements)

    assert [(d.path, d.version) for d in info.requires] == [
        ("numpy", "<2"),
        ("requests", ""),
    ]
    assert info.direct_count == 2


def test_module_info_counts_distinct_paths():
    info = ModuleInfo(
        module_name="m",
        requires=[
            DependencyRef("a", "v1"),
            DependencyRef("a", "v2"),
            DependencyRef("b", indirect=True),
            DependencyRef("b", indirect=True),
        ],
    )

    assert info.total_count == 2
    assert info.direct_count == 1
    assert info.direct_dependencies() == [DependencyRef("a", "v1")]



def test_invalid_requirement(tmp_path: Path):
    requirements = tmp_path / "requirements.txt"
    requirements.write_text("not a valid ==== requirement\n", encoding="utf-8")

    with pytest.raises(ManifestError):
        parse_requirements(requirements)


def test_no_manifest_found(tmp_path: Path):
    with pytest.raises(ManifestError, match="no go.mod or requirements.txt"):
        load_manifest(tmp_path)
