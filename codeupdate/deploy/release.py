from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from codeupdate.settings import Settings


@dataclass(frozen=True)
class Release:
    """Une release identifiée par (projet, ref) et ses emplacements sur disque."""

    project: str
    ref: str
    artifact_path: Path
    release_dir: Path
    remote_key: str


class ReleaseLayout:
    """Résolution déterministe des chemins à partir des gabarits de `Settings`."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def release(self, project: str, ref: str) -> Release:
        return Release(
            project=project,
            ref=ref,
            artifact_path=self.artifact_path(project, ref),
            release_dir=self.release_dir(project, ref),
            remote_key=self.settings.remote_key.format(project=project, ref=ref),
        )

    def artifact_path(self, project: str, ref: str) -> Path:
        return Path(self.settings.artifact_path.format(project=project, ref=ref))

    def artifact_dir(self, project: str) -> Path:
        # le gabarit place toutes les refs d'un projet dans le même dossier
        return self.artifact_path(project, "ref").parent

    def release_dir(self, project: str, ref: str) -> Path:
        return Path(self.settings.release_dir.format(project=project, ref=ref))

    def routing_config(self, project: str) -> Path:
        return Path(self.settings.routing_config.format(project=project))

    def routing_backup(self, project: str) -> Path:
        live = self.routing_config(project)
        return live.with_name(live.name + self.settings.backup_suffix)

    def pointer_path(self, project: str) -> Path:
        return Path(self.settings.pointer_path.format(project=project))
