from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from codeupdate.deploy.release import ReleaseLayout
from codeupdate.errors import PointerWriteError
from codeupdate.settings import Settings


class ActiveReleasePointer:
    """Ref actuellement en production, une valeur texte brute par projet."""

    def __init__(self, settings: Settings) -> None:
        self.layout = ReleaseLayout(settings)

    def path(self, project: str) -> Path:
        return self.layout.pointer_path(project)

    def read(self, project: str) -> Optional[str]:
        path = self.path(project)
        if not path.is_file() or not os.access(path, os.R_OK):
            return None
        ref = path.read_text(encoding="utf-8").strip()
        return ref or None

    def write(self, project: str, ref: str) -> None:
        path = self.path(project)
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(ref, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise PointerWriteError(f"Impossible d'enregistrer la ref active dans '{path}': {exc}") from exc
