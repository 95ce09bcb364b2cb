"""Cache local des artefacts de build.

Un artefact présent et lisible est considéré valide : le md5 n'est vérifié
qu'au moment du téléchargement. La rétention ne s'applique qu'après un
téléchargement réussi.
"""
from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import List

from codeupdate.clients.artifact_store import ArtifactStore
from codeupdate.deploy.release import ReleaseLayout
from codeupdate.errors import ArtifactStoreError, CorruptedArtifact, DownloadError, ErrorCode
from codeupdate.settings import Settings


class ArtifactCache:
    def __init__(self, store: ArtifactStore, settings: Settings, logger: logging.Logger) -> None:
        self.store = store
        self.settings = settings
        self.layout = ReleaseLayout(settings)
        self.logger = logger

    def local_path(self, project: str, ref: str) -> Path:
        return self.layout.artifact_path(project, ref)

    def ensure(self, project: str, ref: str, path: Path) -> bool:
        """Garantit la présence de l'artefact `path`, le télécharge au besoin.

        Returns:
            True si un téléchargement a eu lieu, False sur un hit du cache.

        Raises:
            DownloadError: métadonnées, dossier local ou transfert en échec.
            CorruptedArtifact: le md5 du fichier reçu ne correspond pas.
        """

        path = Path(path)
        if path.is_file() and os.access(path, os.R_OK):
            self.logger.info("Artefact %s déjà en cache", path)
            return False

        remote_key = self.settings.remote_key.format(project=project, ref=ref)
        try:
            metadata = self.store.get_metadata(remote_key)
        except ArtifactStoreError as exc:
            raise DownloadError(str(exc), ErrorCode.ARTIFACT_METADATA) from exc

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DownloadError(f"Impossible de créer {path.parent}: {exc}", ErrorCode.DOWNLOAD_DIRECTORY) from exc

        self.logger.info("Téléchargement de %s vers %s", remote_key, path)
        try:
            self.store.download(remote_key, path)
        except ArtifactStoreError as exc:
            raise DownloadError(str(exc), ErrorCode.ARTIFACT_TRANSFER) from exc

        checksum = file_md5(path)
        if checksum != metadata.md5.lower():
            self.logger.error("md5 attendu %s, obtenu %s pour %s", metadata.md5, checksum, path)
            raise CorruptedArtifact(f"Fichier corrompu: {path}")

        self.prune(project)
        return True

    def prune(self, project: str) -> List[Path]:
        folder = self.layout.artifact_dir(project)
        archives = sorted(p for p in folder.glob("*.zip") if p.is_file())
        # sorted() est stable : à mtime égal, l'ordre du listing est conservé
        archives.sort(key=lambda p: p.stat().st_mtime, reverse=True)

        evicted = archives[self.settings.retention:]
        for archive in evicted:
            self.logger.info("Rétention: suppression de %s", archive)
            archive.unlink(missing_ok=True)
        return evicted


def file_md5(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.md5()  # nosec - contrôle d'intégrité imposé par le stockage distant
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
