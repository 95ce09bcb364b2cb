from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path

from codeupdate.errors import ArchiveOpenError, DirectoryCreateError, ExtractionError


class ReleaseStager:
    """Décompresse un artefact dans le dossier de sa version.

    Le dossier cible est vidé avant extraction : il contient ensuite
    exactement l'arborescence de l'archive, ou n'existe plus si
    l'extraction a échoué.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def stage(self, archive_path: Path, project_dir: Path) -> None:
        project_dir = Path(project_dir)
        try:
            archive = zipfile.ZipFile(archive_path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveOpenError(f"Impossible d'ouvrir '{archive_path}': {exc}") from exc

        with archive:
            try:
                project_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise DirectoryCreateError(f"Impossible de créer le dossier '{project_dir}': {exc}") from exc

            try:
                _clear_directory(project_dir)
                self.logger.info("Extraction de %s dans %s", archive_path, project_dir)
                archive.extractall(project_dir)
            except (OSError, zipfile.BadZipFile, RuntimeError) as exc:
                shutil.rmtree(project_dir, ignore_errors=True)
                raise ExtractionError(
                    f"Impossible de décompresser '{archive_path}' dans '{project_dir}': {exc}"
                ) from exc


def _clear_directory(directory: Path) -> None:
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
