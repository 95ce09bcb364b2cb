"""Taxonomie des erreurs de déploiement.

Chaque échec porte un `ErrorCode` distinct : c'est ce code qui devient le
`status` du rapport JSON et le code de sortie du processus.
"""
from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    OK = 0
    EXEC = 1
    ARGUMENT = 3
    TARGET_NOT_FOUND = 4
    DOWNLOAD_DIRECTORY = 5
    ARTIFACT_TRANSFER = 6
    CORRUPTED_ARTIFACT = 7
    ARTIFACT_METADATA = 8
    ARCHIVE_OPEN = 9
    DIRECTORY_CREATE = 10
    EXTRACTION = 11
    TEMPLATE_MISSING = 12
    CONFIG_CREATE = 13
    CONFIG_WRITE = 14
    POINTER_WRITE = 15
    INTERNAL = 70


class DeployError(Exception):
    """Erreur fonctionnelle lors d'un déploiement."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_report(self) -> dict[str, object]:
        return {"msg": self.message, "status": int(self.code)}


class ArgumentError(DeployError):
    code = ErrorCode.ARGUMENT


class TargetNotFound(DeployError):
    code = ErrorCode.TARGET_NOT_FOUND


class DownloadError(DeployError):
    """Échec de récupération de l'artefact (métadonnées, dossier local, transfert)."""

    code = ErrorCode.ARTIFACT_TRANSFER


class CorruptedArtifact(DownloadError):
    code = ErrorCode.CORRUPTED_ARTIFACT


class UnpackError(DeployError):
    code = ErrorCode.EXTRACTION


class ArchiveOpenError(UnpackError):
    code = ErrorCode.ARCHIVE_OPEN


class DirectoryCreateError(UnpackError):
    code = ErrorCode.DIRECTORY_CREATE


class ExtractionError(UnpackError):
    code = ErrorCode.EXTRACTION


class RoutingConfigError(DeployError):
    code = ErrorCode.CONFIG_WRITE


class TemplateMissing(RoutingConfigError):
    code = ErrorCode.TEMPLATE_MISSING


class ConfigCreateError(RoutingConfigError):
    code = ErrorCode.CONFIG_CREATE


class ConfigWriteError(RoutingConfigError):
    code = ErrorCode.CONFIG_WRITE


class ExecError(DeployError):
    code = ErrorCode.EXEC


class PointerWriteError(DeployError):
    code = ErrorCode.POINTER_WRITE


class ArtifactStoreError(Exception):
    """Échec de transport ou de lecture côté stockage distant."""


class TargetError(Exception):
    """Échec de transport vers une cible d'exécution (docker injoignable, timeout...)."""
