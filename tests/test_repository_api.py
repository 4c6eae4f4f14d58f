import hashlib
import zipfile
from io import BytesIO

import pytest
from fastapi.testclient import TestClient

from composer_hub.app import create_app
from composer_hub.packages.models import Package
from composer_hub.repo.api_keys import API_KEY_PASSWORD
from composer_hub.storage import Storage


def _auth(api_key):
    return (api_key.token, API_KEY_PASSWORD)


def test_health_needs_no_key(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("path", ["/packages.json", "/dist/acme/acme-widget/1.2.0.zip"])
def test_missing_key_is_rejected(client: TestClient, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Basic realm="composer-hub"'


@pytest.mark.parametrize("path", ["/packages.json", "/dist/acme/acme-widget/1.2.0.zip"])
def test_unknown_key_is_rejected(client: TestClient, path):
    response = client.get(path, auth=("not-a-key", API_KEY_PASSWORD))

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Basic realm="composer-hub"'


def test_password_is_not_checked(client: TestClient, api_key):
    response = client.get("/packages.json", auth=(api_key.token, "anything"))

    assert response.status_code == 200


class _UntouchableStorage(Storage):
    def checksum(self, algorithm, file):
        pytest.fail("storage used before authentication")

    def delete(self, file):
        pytest.fail("storage used before authentication")

    def exists(self, file):
        pytest.fail("storage used before authentication")

    def list_files(self, directory):
        pytest.fail("storage used before authentication")

    def move(self, source, destination):
        pytest.fail("storage used before authentication")

    def send(self, file):
        pytest.fail("storage used before authentication")


def test_rejected_requests_never_touch_storage(settings, plugin, archiver):
    app = create_app(settings, [plugin], _UntouchableStorage(), archiver)

    with TestClient(app) as client:
        assert client.get("/packages.json").status_code == 401
        assert client.get("/dist/acme/acme-widget/1.2.0.zip", auth=("bad", "x")).status_code == 401

    assert not archiver.scratch_root.exists() or not any(archiver.scratch_root.iterdir())


def test_packages_index(client: TestClient, api_key, storage):
    response = client.get("/packages.json", auth=_auth(api_key))

    assert response.status_code == 200
    record = response.json()["packages"]["acme/acme-widget"]["1.2.0"]
    artifact = (storage.root / "acme-widget" / "acme-widget-1.2.0.zip").read_bytes()
    assert record["dist"] == {
        "type": "zip",
        "url": "https://repo.example.test/dist/acme/acme-widget/1.2.0.zip",
        "shasum": hashlib.sha1(artifact).hexdigest(),
    }


def test_download_builds_and_sends_artifact(client: TestClient, api_key, storage):
    response = client.get("/dist/acme/acme-widget/1.2.0.zip", auth=_auth(api_key))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert "attachment" in response.headers["content-disposition"]
    with zipfile.ZipFile(BytesIO(response.content)) as zip_file:
        assert "acme-widget/acme-widget.php" in zip_file.namelist()
    assert storage.exists("acme-widget/acme-widget-1.2.0.zip")


def test_download_matches_index_checksum(client: TestClient, api_key):
    index = client.get("/packages.json", auth=_auth(api_key)).json()
    shasum = index["packages"]["acme/acme-widget"]["1.2.0"]["dist"]["shasum"]

    response = client.get("/dist/acme/acme-widget/1.2.0.zip", auth=_auth(api_key))

    assert hashlib.sha1(response.content).hexdigest() == shasum


@pytest.mark.parametrize(
    "path",
    [
        "/dist/other-vendor/acme-widget/1.2.0.zip",
        "/dist/acme/unknown/1.2.0.zip",
        "/dist/acme/acme-widget/9.9.9.zip",
    ],
)
def test_download_not_found(client: TestClient, api_key, path):
    response = client.get(path, auth=_auth(api_key))

    assert response.status_code == 404


def test_download_of_uninstalled_release_is_conflict(settings, storage, archiver, plugin, api_key):
    plugin = plugin.with_releases([("1.2.0", None), ("1.0.0", None)])
    app = create_app(settings, [plugin], storage, archiver)

    with TestClient(app) as client:
        response = client.get("/dist/acme/acme-widget/1.0.0.zip", auth=_auth(api_key))

    assert response.status_code == 409
    assert response.json()["error"] == "package_not_installed"


def test_download_failure_is_bad_gateway(settings, storage, archiver, plugin, api_key):
    plugin = plugin.with_releases([("1.2.0", None), ("1.1.0", "https://downloads.example.test/x.zip")])
    app = create_app(settings, [plugin], storage, archiver)

    with TestClient(app) as client:
        response = client.get("/dist/acme/acme-widget/1.1.0.zip", auth=_auth(api_key))

    assert response.status_code == 502
    assert response.json()["details"] == {"package": "acme-widget", "version": "1.1.0"}


def test_whitelist_hides_packages(settings, storage, archiver, plugin, api_key):
    settings = settings.model_copy(update={"plugins": []})
    app = create_app(settings, [plugin], storage, archiver)

    with TestClient(app) as client:
        assert client.get("/packages.json", auth=_auth(api_key)).json() == {"packages": {}}
        response = client.get("/dist/acme/acme-widget/1.2.0.zip", auth=_auth(api_key))

    assert response.status_code == 404


def test_unreadable_distignore_maps_to_typed_errors(client: TestClient, api_key, plugin):
    (plugin.directory / ".distignore").write_bytes(b"readme.txt\n\xff\xfe caf\xe9\n")

    index = client.get("/packages.json", auth=_auth(api_key))
    download = client.get("/dist/acme/acme-widget/1.2.0.zip", auth=_auth(api_key))

    assert index.status_code == 200
    assert index.json() == {"packages": {}}
    assert download.status_code == 500
    assert download.json()["error"] == "file_operation_failed"
    assert download.json()["details"] == {"package": "acme-widget", "version": "1.2.0"}


def test_index_url_for_build_metadata_version_routes_back(settings, storage, archiver, plugin, api_key):
    package = Package(slug=plugin.slug, kind=plugin.kind, directory=plugin.directory)
    package = package.with_releases([("1.2.0+build.7", None)])
    app = create_app(settings, [package], storage, archiver)

    with TestClient(app) as client:
        index = client.get("/packages.json", auth=_auth(api_key)).json()
        url = index["packages"]["acme/acme-widget"]["1.2.0+build.7"]["dist"]["url"]
        response = client.get(url.removeprefix("https://repo.example.test"), auth=_auth(api_key))

    assert url.endswith("/1.2.0%2Bbuild.7.zip")
    assert response.status_code == 200
