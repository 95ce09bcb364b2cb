"""Déploiement d'une release versionnée.

Enchaînement, arrêt au premier échec :
- vérification des conteneurs cibles
- récupération de l'artefact (cache local ou téléchargement + md5)
- décompression dans `/www/<projet>/<ref>/`
- bascule de la configuration nginx (sauvegarde `.bck`)
- `/code.test.sh` puis `/code.update.sh` dans chaque conteneur
- validation : suppression du `.bck`, de l'ancienne release, mise à jour
  de la ref active

Tout échec après la bascule restaure la configuration précédente et supprime
la nouvelle release : la ref active pointe toujours vers une release validée.

Un seul déploiement à la fois par projet : aucun verrou n'est posé, deux
invocations concurrentes sur le même projet ont un comportement indéfini.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import Optional, Sequence

from codeupdate.clients.artifact_store import ArtifactStore
from codeupdate.clients.execution import ExecutionTarget
from codeupdate.deploy.artifact_cache import ArtifactCache
from codeupdate.deploy.pointer import ActiveReleasePointer
from codeupdate.deploy.preflight import preflight_targets
from codeupdate.deploy.release import Release, ReleaseLayout
from codeupdate.deploy.routing import RoutingConfigManager, RoutingSwap
from codeupdate.deploy.stager import ReleaseStager
from codeupdate.errors import DeployError, ExecError, RoutingConfigError, TargetError
from codeupdate.logging.logger import build_logger
from codeupdate.settings import Settings
from codeupdate.store.sqlite_store import DeploymentState


@dataclass(frozen=True)
class DeploymentResult:
    project: str
    ref: str
    previous_ref: Optional[str]
    downloaded: bool


class DeploymentOrchestrator:
    def __init__(
        self,
        settings: Settings,
        store: ArtifactStore,
        executor: ExecutionTarget,
        logger: logging.Logger,
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.logger = logger
        self.layout = ReleaseLayout(settings)
        self.cache = ArtifactCache(store, settings, logger)
        self.stager = ReleaseStager(logger)
        self.routing = RoutingConfigManager(settings, logger)
        self.pointer = ActiveReleasePointer(settings)

    def run(self, project: str, ref: str, targets: Sequence[str] = ()) -> DeploymentResult:
        targets = list(targets)
        preflight_targets(self.executor, targets, self.logger)

        release = self.layout.release(project, ref)
        active_ref = self.pointer.read(project)

        downloaded = self.cache.ensure(project, ref, release.artifact_path)
        self.stager.stage(release.artifact_path, release.release_dir)

        try:
            swap = self.routing.swap(project, release.release_dir)
        except RoutingConfigError:
            self._discard_release(release, active_ref)
            raise

        for command in (self._test_command(release), self._update_command(release)):
            failure = self._run_everywhere(targets, command)
            if failure is not None:
                self._rollback(swap, release, active_ref)
                raise failure

        self.routing.commit(swap)
        if active_ref and active_ref != ref:
            self._reclaim(project, active_ref)
        self.pointer.write(project, ref)

        self.logger.info("Ref active de %s: %s (précédente: %s)", project, ref, active_ref or "aucune")
        return DeploymentResult(project=project, ref=ref, previous_ref=active_ref, downloaded=downloaded)

    def _test_command(self, release: Release) -> str:
        return self.settings.test_command.format(project=release.project, ref=release.ref)

    def _update_command(self, release: Release) -> str:
        return self.settings.update_command.format(
            project=release.project,
            ref=release.ref,
            artifact=release.artifact_path,
        )

    def _run_everywhere(self, targets: Sequence[str], command: str) -> Optional[ExecError]:
        """Lance `command` cible par cible ; rend la première erreur, sans lever."""

        for target in targets:
            self.logger.info('Exécution de "%s" dans %s', command, target)
            try:
                result = self.executor.run(target, command)
            except TargetError as exc:
                return ExecError(f'Erreur d\'exécution de "{command}" dans "{target}": {exc}')
            if not result.ok:
                return ExecError(
                    f'Erreur d\'exécution de "{command}" dans "{target}". Code de sortie {result.exit_code}'
                )
        return None

    def _rollback(self, swap: RoutingSwap, release: Release, active_ref: Optional[str]) -> None:
        self.logger.warning("Rollback de %s (%s)", release.project, release.ref)
        try:
            self.routing.rollback(swap)
        except OSError as exc:
            self.logger.exception("Restauration de %s impossible: %s", swap.live, exc)
        self._discard_release(release, active_ref)

    def _discard_release(self, release: Release, active_ref: Optional[str]) -> None:
        if release.ref == active_ref:
            # redéploiement de la ref en production : son dossier reste routé
            self.logger.warning("Dossier %s conservé, il porte la release active", release.release_dir)
            return
        self.logger.info("Suppression de %s", release.release_dir)
        shutil.rmtree(release.release_dir, ignore_errors=True)

    def _reclaim(self, project: str, previous_ref: str) -> None:
        previous_dir = self.layout.release_dir(project, previous_ref)
        self.logger.info("Suppression de l'ancienne release %s", previous_dir)
        shutil.rmtree(previous_dir, ignore_errors=True)
        self.layout.routing_backup(project).unlink(missing_ok=True)


def deploy(
    project: str,
    ref: str,
    targets: Sequence[str],
    settings: Settings,
    store: ArtifactStore,
    executor: ExecutionTarget,
    logger: logging.Logger | None = None,
) -> DeploymentResult:
    """Déploie `ref` pour `project` et journalise le résultat dans SQLite.

    Raises:
        DeployError: en cas d'échec (le statut SQLite est quand même mis à jour).
    """

    logger = logger or build_logger(project, settings.logs_dir)
    logger.info("=== Déploiement %s (%s) démarré ===", project, ref)

    db = DeploymentState(settings.db_path)
    db.ensure_schema()

    orchestrator = DeploymentOrchestrator(settings, store, executor, logger)
    try:
        result = orchestrator.run(project, ref, targets)
    except DeployError as exc:
        logger.error("Déploiement échoué [%s]: %s", exc.code.name, exc.message)
        db.upsert_status(project, ref, "FAILED", exc.message)
        raise

    db.upsert_status(project, ref, "SUCCESS", "Déploiement validé dans tous les conteneurs")
    logger.info("=== Déploiement %s (%s) terminé avec succès ===", project, ref)
    return result
