from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass
class CommandResult:
    returncode: int
    output: str


def build_logger(project: str, logs_dir: Path, log_filename: str = "deploy.log") -> logging.Logger:
    logs_dir.mkdir(parents=True, exist_ok=True)
    project_log_dir = logs_dir / project
    project_log_dir.mkdir(parents=True, exist_ok=True)
    log_file = project_log_dir / log_filename

    logger = logging.getLogger(f"deploy.{project}")
    logger.setLevel(logging.INFO)

    if not any(isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_file) for handler in logger.handlers):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # stderr : stdout est réservé au rapport JSON
        if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)

    return logger


def run_command(
    command: List[str],
    logger: logging.Logger,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Exécute une commande et journalise sa sortie.

    Le code de retour est rendu tel quel : c'est à l'appelant de décider si un
    code non nul est une erreur. `subprocess.TimeoutExpired` et `OSError`
    (binaire absent) sont propagées.
    """

    logger.info("$ %s", " ".join(command))
    result = subprocess.run(
        command,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
        timeout=timeout,
    )
    if result.stdout:
        logger.info(result.stdout.strip())

    return CommandResult(returncode=result.returncode, output=result.stdout or "")
