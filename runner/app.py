"""Vue HTTP en lecture seule de l'état des déploiements.

Les déploiements eux-mêmes ne passent que par la CLI `code-update`.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from codeupdate.deploy.pointer import ActiveReleasePointer
from codeupdate.deploy.release import ReleaseLayout
from codeupdate.settings import Settings, load_settings
from codeupdate.store.sqlite_store import DeploymentState

SAFE_LOG_NAMES = {"deploy.log"}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    layout = ReleaseLayout(settings)
    pointer = ActiveReleasePointer(settings)

    app = FastAPI(title="code-update runner", version="0.1.0")

    # --- Helpers ---
    def _fetch_deployment(project: str) -> Optional[Dict[str, Any]]:
        if not settings.db_path.exists():
            return None
        state = DeploymentState(settings.db_path)
        state.ensure_schema()
        return state.get(project)

    # --- Routes ---
    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/projects/{project}")
    def project_detail(project: str) -> Dict[str, Any]:
        active_ref = pointer.read(project)
        deployment = _fetch_deployment(project)
        if active_ref is None and deployment is None:
            raise HTTPException(status_code=404, detail="Projet inconnu")

        return {
            "project": project,
            "active_ref": active_ref,
            "release_dir": str(layout.release_dir(project, active_ref)) if active_ref else None,
            "routing_config": str(layout.routing_config(project)),
            "pending_backup": layout.routing_backup(project).exists(),
            "last_deployment": deployment,
        }

    @app.get("/projects/{project}/logs/{log_name}", response_class=PlainTextResponse)
    def view_log(project: str, log_name: str) -> PlainTextResponse:
        if log_name not in SAFE_LOG_NAMES or project.startswith("."):
            raise HTTPException(status_code=404, detail="Log inconnu")

        log_path = settings.logs_dir / project / log_name
        if not log_path.exists():
            raise HTTPException(status_code=404, detail="Fichier de log introuvable")

        content = log_path.read_text(encoding="utf-8", errors="replace")
        return PlainTextResponse(content)

    return app
