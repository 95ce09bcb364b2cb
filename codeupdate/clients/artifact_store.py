"""Accès au stockage distant des artefacts de build.

Le cœur du déploiement ne dépend que du protocole `ArtifactStore` ;
`YandexDiskStore` en est l'implémentation via l'API REST de Yandex Disk.
"""
from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from codeupdate.errors import ArtifactStoreError

YANDEX_DISK_API = "https://cloud-api.yandex.net/v1/disk/resources"


@dataclass(frozen=True)
class ArtifactMetadata:
    md5: str
    size: int | None = None


class ArtifactStore(Protocol):
    def get_metadata(self, remote_key: str) -> ArtifactMetadata: ...

    def download(self, remote_key: str, local_path: Path) -> None: ...


class YandexDiskStore:
    def __init__(self, token: str, timeout: float = 60.0, api_url: str = YANDEX_DISK_API) -> None:
        self.token = token.strip()
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def get_metadata(self, remote_key: str) -> ArtifactMetadata:
        payload = self._get_json(f"{self.api_url}?{urlencode({'path': remote_key})}")
        md5 = payload.get("md5")
        if not md5:
            raise ArtifactStoreError(f"Aucun md5 fourni pour {remote_key}")
        return ArtifactMetadata(md5=str(md5), size=payload.get("size"))

    def download(self, remote_key: str, local_path: Path) -> None:
        payload = self._get_json(f"{self.api_url}/download?{urlencode({'path': remote_key})}")
        href = payload.get("href")
        if not href:
            raise ArtifactStoreError(f"Aucun lien de téléchargement pour {remote_key}")

        try:
            with urlopen(Request(href, method="GET"), timeout=self.timeout) as resp:  # nosec - lien fourni par l'API
                with Path(local_path).open("wb") as out:
                    shutil.copyfileobj(resp, out)
        except HTTPError as exc:
            raise ArtifactStoreError(_describe_http_error(exc)) from exc
        except (URLError, OSError) as exc:
            raise ArtifactStoreError(f"Téléchargement de {remote_key} échoué: {exc}") from exc

    def _get_json(self, url: str) -> dict:
        req = Request(
            url,
            method="GET",
            headers={"Authorization": f"OAuth {self.token}", "Accept": "application/json"},
        )
        try:
            with urlopen(req, timeout=self.timeout) as resp:  # nosec - URL de l'API Yandex
                payload = json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            raise ArtifactStoreError(_describe_http_error(exc)) from exc
        except (URLError, OSError) as exc:
            raise ArtifactStoreError(f"API Yandex Disk injoignable: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ArtifactStoreError(f"Réponse Yandex Disk invalide: {exc}") from exc

        if not isinstance(payload, dict):
            raise ArtifactStoreError("Réponse Yandex Disk invalide: objet JSON attendu")
        return payload


def _describe_http_error(exc: HTTPError) -> str:
    # l'API renvoie {"message": ..., "description": ..., "error": ...}
    try:
        body = json.loads(exc.read().decode("utf-8"))
    except (OSError, ValueError):
        body = None
    if isinstance(body, dict) and (body.get("message") or body.get("description")):
        return str(body.get("message") or body.get("description"))
    return f"Erreur HTTP {exc.code}: {exc.reason}"
