"""
Read project manifests into dependency lists.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .models import DependencyRef, ModuleInfo


logger = logging.getLogger(__name__)

GO_MOD = "go.mod"
REQUIREMENTS_TXT = "requirements.txt"

_INDIRECT_MARKER = re.compile(r"//\s*indirect\b")
# Per-requirement pip options such as --hash, which start the first "-" token.
_INLINE_OPTION = re.compile(r"\s+-{1,2}[A-Za-z]")


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or parsed."""


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"failed to read {path.name}: {e}") from e


def _strip_quotes(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"`":
        return token[1:-1]
    return token


def _parse_require(line: str, path: Path, lineno: int) -> DependencyRef:
    indirect = bool(_INDIRECT_MARKER.search(line))
    fields = line.split("//", 1)[0].split()
    if len(fields) != 2:
        raise ManifestError(f"failed to parse {path.name}:{lineno}: usage: require module/path v1.2.3")
    return DependencyRef(path=_strip_quotes(fields[0]), version=fields[1], indirect=indirect)


def parse_go_mod_text(text: str, path: Path = Path(GO_MOD)) -> ModuleInfo:
    """Parse the contents of a ``go.mod`` file.

    Only the ``module``, ``go`` and ``require`` directives matter here; other
    directives and their blocks are skipped.
    """
    module_name: Optional[str] = None
    go_version = ""
    requires: List[DependencyRef] = []
    block: Optional[str] = None

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("//"):
            continue

        if block is not None:
            if line == ")":
                block = None
            elif block == "require":
                requires.append(_parse_require(line, path, lineno))
            continue

        verb, *tail = line.split(None, 1)
        rest = tail[0].strip() if tail else ""
        if rest == "(":
            block = verb
        elif verb == "module":
            module_name = _strip_quotes(rest.split("//", 1)[0].strip())
        elif verb == "go":
            go_version = rest.split("//", 1)[0].strip()
        elif verb == "require":
            requires.append(_parse_require(rest, path, lineno))

    if block is not None:
        raise ManifestError(f"failed to parse {path.name}: unterminated {block} block")
    if not module_name:
        raise ManifestError(f"failed to parse {path.name}: no module directive")

    return ModuleInfo(
        module_name=module_name,
        language_version=go_version,
        requires=requires,
        ecosystem="go",
    )


def parse_go_mod(project_path: Union[str, Path]) -> ModuleInfo:
    """Read and parse ``go.mod`` in ``project_path``."""
    mod_path = Path(project_path) / GO_MOD
    return parse_go_mod_text(_read(mod_path), mod_path)


def _logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield requirement lines with continuations joined, comments and options removed."""
    pending: List[str] = []
    start = 0
    for lineno, raw in enumerate(text.splitlines(), 1):
        if not pending:
            start = lineno
        line = raw.split(" #", 1)[0].rstrip()
        if line.endswith("\\"):
            pending.append(line[:-1])
            continue
        pending.append(line)
        yield start, _join_requirement(pending)
        pending = []
    if pending:
        yield start, _join_requirement(pending)


def _join_requirement(parts: List[str]) -> str:
    joined = " ".join(part.strip() for part in parts)
    return _INLINE_OPTION.split(joined, 1)[0].strip()


def parse_requirements(requirements_path: Union[str, Path]) -> ModuleInfo:
    """Read a ``requirements.txt``. Every listed requirement is direct.

    A name listed more than once (for instance under different markers) is
    kept once, with its first specifier.
    """
    path = Path(requirements_path)
    requires: List[DependencyRef] = []
    seen = set()

    for lineno, line in _logical_lines(_read(path)):
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        try:
            req = Requirement(line)
        except InvalidRequirement as e:
            raise ManifestError(f"failed to parse {path.name}:{lineno}: {e}") from e
        name = canonicalize_name(req.name)
        if name in seen:
            logger.debug("Skipping repeated requirement %s at line %d", req.name, lineno)
            continue
        seen.add(name)
        requires.append(DependencyRef(path=req.name, version=str(req.specifier)))

    return ModuleInfo(
        module_name=path.resolve().parent.name,
        requires=requires,
        ecosystem="pypi",
    )


def load_manifest(project_path: Union[str, Path]) -> ModuleInfo:
    """Find and parse the manifest of the project at ``project_path``.

    ``project_path`` may be a directory holding ``go.mod`` or
    ``requirements.txt``, or one of those files directly.
    """
    path = Path(project_path)
    if path.is_file():
        if path.name == GO_MOD:
            return parse_go_mod_text(_read(path), path)
        return parse_requirements(path)

    if (path / GO_MOD).is_file():
        logger.debug("Using %s", path / GO_MOD)
        return parse_go_mod(path)
    if (path / REQUIREMENTS_TXT).is_file():
        logger.debug("Using %s", path / REQUIREMENTS_TXT)
        return parse_requirements(path / REQUIREMENTS_TXT)

    raise ManifestError(f"no {GO_MOD} or {REQUIREMENTS_TXT} found in {path}")
