from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    documents: Path
    exports: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        documents=out_dir / "documents",
        exports=out_dir / "exports",
    )
    for path in (paths.root, paths.documents, paths.exports):
        path.mkdir(parents=True, exist_ok=True)
    return paths
