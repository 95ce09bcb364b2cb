"""Point d'entrée `code-update`.

Affiche toujours un objet JSON `{"msg": ..., "status": ...}` sur stdout ;
le code de sortie du processus vaut `status`.
"""
from __future__ import annotations

import json
import sys
from typing import List, Optional, Sequence

import click

from codeupdate.clients.artifact_store import YandexDiskStore
from codeupdate.clients.execution import DockerCliTarget
from codeupdate.deploy.orchestrator import DeploymentResult, deploy
from codeupdate.deploy.preflight import preflight_environment
from codeupdate.errors import ArgumentError, DeployError, ErrorCode
from codeupdate.logging.logger import build_logger
from codeupdate.settings import load_settings


@click.command()
@click.option("-t", "--token", default="", help="Token de l'API Yandex Disk")
@click.option("-r", "--ref", default="", help="Tag ou nom de branche")
@click.option("-p", "--project", default="", help="Nom du projet")
@click.option("-s", "--service", "services", multiple=True, help="Nom ou id du conteneur (répétable)")
def cli(token: str, ref: str, project: str, services: Sequence[str]) -> DeploymentResult:
    """Déploie la release REF du projet PROJECT dans les conteneurs SERVICE."""

    try:
        settings = load_settings()
    except ValueError as exc:
        raise ArgumentError(f"Configuration invalide: {exc}") from exc

    token, ref, project = token.strip(), ref.strip(), project.strip()
    if not token:
        raise ArgumentError("Le token Yandex est vide")
    if settings.token_length and len(token) != settings.token_length:
        raise ArgumentError(f"Le token Yandex doit faire {settings.token_length} caractères")
    if not ref:
        raise ArgumentError("La ref est vide")
    if not project:
        raise ArgumentError("Le projet est vide")

    targets = [service.strip() for service in services if service.strip()]
    preflight_environment(settings.docker_binary, targets)

    logger = build_logger(project, settings.logs_dir)
    store = YandexDiskStore(token, timeout=settings.http_timeout)
    executor = DockerCliTarget(logger, docker_binary=settings.docker_binary, timeout=settings.exec_timeout)
    return deploy(project, ref, targets, settings, store, executor, logger=logger)


def main(argv: Optional[List[str]] = None) -> int:
    try:
        outcome = cli.main(args=argv, prog_name="code-update", standalone_mode=False)
    except click.ClickException as exc:
        return _report(ArgumentError(exc.format_message()).to_report())
    except click.Abort:
        return _report(ArgumentError("Interrompu").to_report())
    except DeployError as exc:
        return _report(exc.to_report())
    except Exception as exc:  # noqa: BLE001 - le rapport JSON doit toujours être émis
        return _report({"msg": str(exc) or exc.__class__.__name__, "status": int(ErrorCode.INTERNAL)})

    if not isinstance(outcome, DeploymentResult):
        # --help : l'aide est déjà affichée, aucun déploiement
        return int(outcome or 0)
    return _report({"msg": "ok", "status": int(ErrorCode.OK)})


def _report(payload: dict) -> int:
    click.echo(json.dumps(payload, ensure_ascii=False))
    return int(payload["status"])


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
