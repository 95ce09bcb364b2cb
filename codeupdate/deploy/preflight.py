from __future__ import annotations

import logging
import shutil
from typing import Sequence

from codeupdate.clients.execution import ExecutionTarget
from codeupdate.errors import TargetError, TargetNotFound


def preflight_environment(docker_binary: str, targets: Sequence[str]) -> None:
    """Vérifie la présence de la CLI docker quand des cibles sont demandées."""

    if targets and not shutil.which(docker_binary):
        raise TargetNotFound(f"Binaire requis introuvable: {docker_binary}")


def preflight_targets(executor: ExecutionTarget, targets: Sequence[str], logger: logging.Logger) -> None:
    """Vérifie que chaque cible d'exécution existe, sans aucun autre effet de bord."""

    if not targets:
        logger.warning("Aucune cible d'exécution fournie, les scripts ne seront pas lancés")
        return

    for target in targets:
        try:
            found = executor.exists(target)
        except TargetError as exc:
            raise TargetNotFound(f'Conteneur "{target}" inaccessible: {exc}') from exc
        if not found:
            raise TargetNotFound(f'Conteneur "{target}" introuvable')
        logger.info("Conteneur %s présent", target)
