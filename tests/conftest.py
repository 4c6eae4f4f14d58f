from __future__ import annotations

import io
import os
import tempfile
from pathlib import Path

# Point the database and artifact roots at a throwaway directory before any
# composer_hub module resolves its settings.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="composer-hub-tests-"))
os.environ["COMPOSER_HUB_DATABASE_URL"] = f"sqlite:///{(_TEST_ROOT / 'composer-hub.db').as_posix()}"
os.environ["COMPOSER_HUB_STORAGE_ROOT"] = str(_TEST_ROOT / "storage")
os.environ["COMPOSER_HUB_SCRATCH_ROOT"] = str(_TEST_ROOT / "scratch")
os.environ.pop("COMPOSER_HUB_CATALOG_PATH", None)

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import delete

from composer_hub.app import create_app
from composer_hub.archiver import Archiver
from composer_hub.config.settings import ComposerHubSettings
from composer_hub.db.migrations import upgrade_database
from composer_hub.db.models import ApiKeyRecord
from composer_hub.db.session import SessionLocal
from composer_hub.packages.models import Package, PackageKind
from composer_hub.repo.api_keys import create_api_key
from composer_hub.storage import LocalStorage


class StubSession:
    """Stands in for ``requests.Session`` and serves canned responses by URL."""

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses = dict(responses or {})
        self.requested: list[str] = []

    def get(self, url: str, stream: bool = False, timeout: float | None = None) -> requests.Response:
        self.requested.append(url)
        result = self.responses.get(url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return make_response(url, b"", status_code=404)
        status_code, body = result
        return make_response(url, body, status_code=status_code)


def make_response(url: str, body: bytes, *, status_code: int = 200) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.reason = "OK" if status_code < 400 else "Error"
    response.raw = io.BytesIO(body)
    return response


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    import zipfile

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zip_file:
        for name, content in entries.items():
            zip_file.writestr(name, content)
    return buffer.getvalue()


def write_files(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture(scope="session", autouse=True)
def _database() -> None:
    upgrade_database()


@pytest.fixture(autouse=True)
def _clean_api_keys():
    yield
    with SessionLocal() as session:
        session.execute(delete(ApiKeyRecord))
        session.commit()


@pytest.fixture
def plugins_root(tmp_path: Path) -> Path:
    root = tmp_path / "plugins"
    write_files(
        root / "acme-widget",
        {
            "acme-widget.php": "<?php\n/* Plugin Name: Acme Widget */\n",
            "readme.txt": "=== Acme Widget ===\n",
            "includes/class-widget.php": "<?php\nclass Acme_Widget {}\n",
            ".git/config": "[core]\n",
            "node_modules/left-pad/index.js": "module.exports = 1;\n",
            ".DS_Store": "junk",
        },
    )
    return root


@pytest.fixture
def plugin(plugins_root: Path) -> Package:
    return Package(
        slug="acme-widget",
        kind=PackageKind.PLUGIN,
        name="Acme Widget",
        author="Acme Inc",
        author_url="https://acme.example.test",
        description="Adds widgets.",
        homepage="https://acme.example.test/widget",
        directory=plugins_root / "acme-widget",
        installed_version="1.2.0",
    ).with_releases([("1.2.0", None)])


@pytest.fixture
def settings(tmp_path: Path) -> ComposerHubSettings:
    return ComposerHubSettings(
        vendor="acme",
        base_url="https://repo.example.test/",
        storage_root=tmp_path / "storage",
        scratch_root=tmp_path / "scratch",
    )


@pytest.fixture
def storage(settings: ComposerHubSettings) -> LocalStorage:
    return LocalStorage.from_settings(settings)


@pytest.fixture
def stub_session() -> StubSession:
    return StubSession()


@pytest.fixture
def archiver(settings: ComposerHubSettings, stub_session: StubSession) -> Archiver:
    return Archiver.from_settings(settings, session=stub_session)


@pytest.fixture
def api_key():
    return create_api_key("alice", "laptop")


@pytest.fixture
def client(settings, plugin, storage, archiver):
    app = create_app(settings, [plugin], storage, archiver)
    with TestClient(app) as test_client:
        yield test_client
