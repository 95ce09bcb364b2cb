"""Paramètres du déploiement.

Toutes les valeurs ont un défaut utilisable en production (chemins `/update`,
`/www/...`) et peuvent être surchargées par des variables d'environnement
préfixées `CODE_UPDATE_` (ex. `CODE_UPDATE_RETENTION=10`).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping

ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT_DIR / "data"
ENV_PREFIX = "CODE_UPDATE_"


@dataclass(frozen=True)
class Settings:
    artifact_path: str = "/update/{project}/{ref}.zip"
    release_dir: str = "/www/{project}/{ref}"
    routing_config: str = "/www/conf/{project}.conf"
    pointer_path: str = "/www/run/{project}.txt"
    backup_suffix: str = ".bck"
    remote_key: str = "builds/{project}/{ref}.zip"
    template_path: str = "prod/nginx.conf"
    placeholder: str = "{project-path}"
    test_command: str = "/code.test.sh -p {project} -r {ref}"
    update_command: str = "/code.update.sh -p {project} -f {artifact} -r {ref}"
    retention: int = 6
    token_length: int = 39
    http_timeout: float = 60.0
    exec_timeout: float = 600.0
    docker_binary: str = "docker"
    data_dir: Path = DATA_DIR

    @property
    def logs_dir(self) -> Path:
        return Path(self.data_dir) / "logs"

    @property
    def db_path(self) -> Path:
        return Path(self.data_dir) / "state.sqlite"


def load_settings(env: Mapping[str, str] | None = None, **overrides) -> Settings:
    """Construit les paramètres depuis l'environnement.

    Args:
        env: mapping des variables d'environnement (par défaut os.environ).
        overrides: valeurs explicites, prioritaires sur l'environnement.

    Raises:
        ValueError: si une valeur numérique est invalide.
    """

    env = os.environ if env is None else env
    values: dict[str, object] = {}
    for field in fields(Settings):
        raw = env.get(ENV_PREFIX + field.name.upper())
        if raw is None or raw == "":
            continue
        if field.type == "int":
            values[field.name] = int(raw)
        elif field.type == "float":
            values[field.name] = float(raw)
        elif field.type == "Path":
            values[field.name] = Path(raw)
        else:
            values[field.name] = raw

    values.update(overrides)
    settings = Settings(**values)
    if settings.retention < 1:
        raise ValueError("retention doit être strictement positive")
    return settings
