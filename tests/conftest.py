import hashlib
import logging
import zipfile
from pathlib import Path

import pytest

from codeupdate.clients.artifact_store import ArtifactMetadata
from codeupdate.clients.execution import ExecResult
from codeupdate.errors import ArtifactStoreError, TargetError
from codeupdate.settings import load_settings

FIXTURE_RELEASE = Path(__file__).resolve().parents[1] / "fixtures" / "sample_release"


def build_archive(path: Path, source_dir: Path = FIXTURE_RELEASE, extra: dict | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for file in sorted(source_dir.rglob("*")):
            if file.is_file():
                zf.write(file, file.relative_to(source_dir).as_posix())
        for name, content in (extra or {}).items():
            zf.writestr(name, content)
    return path


def archive_bytes(tmp_path: Path, name: str = "build.zip", **kwargs) -> bytes:
    return build_archive(tmp_path / "builds" / name, **kwargs).read_bytes()


class FakeStore:
    """Stockage distant en mémoire : remote_key -> contenu."""

    def __init__(self, objects: dict | None = None) -> None:
        self.objects = dict(objects or {})
        self.md5_override: dict[str, str] = {}
        self.fail_metadata = False
        self.fail_download = False
        self.calls: list[tuple[str, str]] = []

    def get_metadata(self, remote_key):
        self.calls.append(("get_metadata", remote_key))
        if self.fail_metadata or remote_key not in self.objects:
            raise ArtifactStoreError(f"Resource not found: {remote_key}")
        md5 = self.md5_override.get(remote_key) or hashlib.md5(self.objects[remote_key]).hexdigest()
        return ArtifactMetadata(md5=md5, size=len(self.objects[remote_key]))

    def download(self, remote_key, local_path):
        self.calls.append(("download", remote_key))
        if self.fail_download:
            raise ArtifactStoreError("connection reset")
        Path(local_path).write_bytes(self.objects[remote_key])


class FakeExecutor:
    """Conteneurs simulés ; `exit_codes[(cible, script)]` fixe le code de sortie."""

    def __init__(self, existing=("web1", "web2")) -> None:
        self.existing = set(existing)
        self.exit_codes: dict[tuple[str, str], int] = {}
        self.broken: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.checked: list[str] = []

    def exists(self, target):
        self.checked.append(target)
        return target in self.existing

    def run(self, target, command):
        self.calls.append((target, command))
        if target in self.broken:
            raise TargetError("docker daemon unreachable")
        script = command.split()[0]
        return ExecResult(target=target, exit_code=self.exit_codes.get((target, script), 0))


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        env={},
        artifact_path=str(tmp_path / "update" / "{project}" / "{ref}.zip"),
        release_dir=str(tmp_path / "www" / "{project}" / "{ref}"),
        routing_config=str(tmp_path / "www" / "conf" / "{project}.conf"),
        pointer_path=str(tmp_path / "www" / "run" / "{project}.txt"),
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def logger():
    return logging.getLogger("tests.codeupdate")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def executor():
    return FakeExecutor()
