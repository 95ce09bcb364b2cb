"""Bascule de la configuration nginx d'un projet.

Protocole :
1. le gabarit `prod/nginx.conf` de la release doit exister ;
2. la configuration active est *copiée* en `.bck` (l'originale reste en place) ;
3. le rendu est écrit dans `.tmp` puis renommé atomiquement sur la
   configuration active ;
4. l'appelant termine par `commit()` (supprime le `.bck`) ou `rollback()`
   (renomme le `.bck` sur la configuration active).

À aucun moment la configuration active n'est absente ou partiellement écrite.
"""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from codeupdate.deploy.release import ReleaseLayout
from codeupdate.errors import ConfigCreateError, ConfigWriteError, TemplateMissing
from codeupdate.settings import Settings

TMP_SUFFIX = ".tmp"


@dataclass(frozen=True)
class RoutingSwap:
    project: str
    live: Path
    backup: Path
    had_previous: bool


class RoutingConfigManager:
    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self.settings = settings
        self.layout = ReleaseLayout(settings)
        self.logger = logger

    def template_for(self, release_dir: Path) -> Path:
        return Path(release_dir) / self.settings.template_path

    def render(self, release_dir: Path) -> str:
        template = self.template_for(release_dir)
        if not template.is_file() or not os.access(template, os.R_OK):
            raise TemplateMissing(f"Config nginx '{template}' introuvable")
        try:
            content = template.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateMissing(f"Config nginx '{template}' illisible: {exc}") from exc
        project_path = os.path.join(os.path.abspath(release_dir), "")
        return content.replace(self.settings.placeholder, project_path)

    def swap(self, project: str, release_dir: Path) -> RoutingSwap:
        """Installe la configuration rendue depuis `release_dir`.

        Raises:
            TemplateMissing: gabarit absent, rien n'a été touché.
            ConfigCreateError: sauvegarde ou fichier temporaire impossible à créer.
            ConfigWriteError: écriture ou renommage en échec.
        Dans les deux derniers cas la configuration active est inchangée et
        aucun `.bck` ne subsiste.
        """

        rendered = self.render(release_dir)

        live = self.layout.routing_config(project)
        backup = self.layout.routing_backup(project)
        tmp = live.with_name(live.name + TMP_SUFFIX)
        had_previous = live.exists()

        try:
            live.parent.mkdir(parents=True, exist_ok=True)
            if had_previous:
                shutil.copy2(live, backup)
            else:
                backup.unlink(missing_ok=True)
        except OSError as exc:
            self._discard(backup)
            raise ConfigCreateError(f"Impossible de sauvegarder '{live}': {exc}") from exc

        try:
            handle = tmp.open("w", encoding="utf-8")
        except OSError as exc:
            self._discard(backup)
            raise ConfigCreateError(f"Impossible de créer '{tmp}': {exc}") from exc

        written = 0
        try:
            with handle:
                written = handle.write(rendered)
                handle.flush()
                os.fsync(handle.fileno())
            if written:
                os.replace(tmp, live)
        except OSError as exc:
            self._discard(tmp, backup)
            raise ConfigWriteError(f"Erreur d'écriture dans '{live}': {exc}") from exc

        if not written:
            self._discard(tmp, backup)
            raise ConfigWriteError(f"Aucune donnée écrite dans '{live}'")

        self.logger.info("Configuration %s basculée vers %s", live, release_dir)
        return RoutingSwap(project=project, live=live, backup=backup, had_previous=had_previous)

    def commit(self, swap: RoutingSwap) -> None:
        swap.backup.unlink(missing_ok=True)
        self.logger.info("Configuration %s validée", swap.live)

    def rollback(self, swap: RoutingSwap) -> None:
        if swap.had_previous:
            os.replace(swap.backup, swap.live)
            self.logger.warning("Configuration %s restaurée depuis %s", swap.live, swap.backup)
        else:
            swap.live.unlink(missing_ok=True)
            self.logger.warning("Configuration %s retirée (aucune version précédente)", swap.live)

    def _discard(self, *paths: Path) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                self.logger.warning("Nettoyage de %s impossible: %s", path, exc)
