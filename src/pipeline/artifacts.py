from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from logger import get_logger

log = get_logger("stagearr.artifacts")


@dataclass(frozen=True)
class ArtifactArchive:
    """
    Copies designated outputs (test report, coverage, build output) from
    the workspace into a per-build archive directory.

    Patterns are globs relative to `source_root`. A pattern with no match is
    skipped and reported, never an error.
    """

    source_root: Path
    dest: Path
    patterns: tuple[str, ...]

    def collect(self) -> tuple[list[Path], list[str]]:
        archived: list[Path] = []
        missing: list[str] = []

        if not self.source_root.is_dir():
            log.info(f"No workspace at {self.source_root}; skipping archive")
            return archived, list(self.patterns)

        for pattern in self.patterns:
            if not is_workspace_relative(pattern):
                log.error(f"Artifact pattern escapes the workspace, skipping: {pattern}")
                missing.append(pattern)
                continue
            try:
                matches = sorted(self.source_root.glob(pattern))
            except (OSError, ValueError, NotImplementedError) as e:
                log.error(f"Bad artifact pattern {pattern!r}: {e}")
                missing.append(pattern)
                continue
            if not matches:
                log.info(f"Artifact not found, skipping: {pattern}")
                missing.append(pattern)
                continue

            for src in matches:
                try:
                    target = self.dest / src.relative_to(self.source_root)
                    _copy(src, target)
                except (OSError, ValueError) as e:
                    log.error(f"Could not archive {src}: {e}")
                    continue
                archived.append(target)
                log.info(f"Archived {src.relative_to(self.source_root)}")

        return archived, missing


def is_workspace_relative(pattern: str) -> bool:
    p = Path(pattern)
    return not p.is_absolute() and ".." not in p.parts


def _copy(src: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, target, dirs_exist_ok=True)
    else:
        shutil.copy2(src, target)


def write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False, sort_keys=True)
    tmp.replace(path)
