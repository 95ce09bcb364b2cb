"""Cibles d'exécution (conteneurs) dans lesquelles tournent les scripts de release."""
from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from codeupdate.errors import TargetError
from codeupdate.logging.logger import run_command


@dataclass(frozen=True)
class ExecResult:
    target: str
    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ExecutionTarget(Protocol):
    def exists(self, target: str) -> bool: ...

    def run(self, target: str, command: str) -> ExecResult: ...


class DockerCliTarget:
    """Pilote les conteneurs via la CLI docker (`docker inspect` / `docker exec`)."""

    def __init__(self, logger: logging.Logger, docker_binary: str = "docker", timeout: float | None = 600.0) -> None:
        self.logger = logger
        self.docker_binary = docker_binary
        self.timeout = timeout

    def exists(self, target: str) -> bool:
        result = self._docker(["inspect", "--type", "container", "--format", "{{.Id}}", target])
        return result.returncode == 0

    def run(self, target: str, command: str) -> ExecResult:
        result = self._docker(["exec", target, *shlex.split(command)])
        return ExecResult(target=target, exit_code=result.returncode, output=result.output)

    def _docker(self, args: list[str]):
        command = [self.docker_binary, *args]
        try:
            return run_command(command, logger=self.logger, timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise TargetError(f"Commande docker expirée après {exc.timeout}s: {' '.join(command)}") from exc
        except OSError as exc:
            raise TargetError(f"Impossible de lancer {self.docker_binary}: {exc}") from exc
