import hashlib

import pytest

from composer_hub.exceptions import FileNotFound
from composer_hub.packages.models import Package, PackageKind
from composer_hub.release_manager import ReleaseManager
from composer_hub.transformer import ComposerPackageTransformer


@pytest.fixture
def transformer(settings, storage, archiver):
    return ComposerPackageTransformer(settings, storage, ReleaseManager(archiver, storage))


def test_transform_builds_records_with_dist_checksum(transformer, storage, plugin):
    records = transformer.transform(plugin)

    assert list(records) == ["1.2.0"]
    record = records["1.2.0"]
    artifact = (storage.root / "acme-widget" / "acme-widget-1.2.0.zip").read_bytes()
    assert record == {
        "name": "acme/acme-widget",
        "version": "1.2.0",
        "version_normalized": "1.2.0.0",
        "type": "wordpress-plugin",
        "description": "Adds widgets.",
        "homepage": "https://acme.example.test/widget",
        "authors": [{"name": "Acme Inc", "homepage": "https://acme.example.test"}],
        "require": {"composer/installers": "^1.0 || ^2.0"},
        "extra": {"display-name": "Acme Widget"},
        "dist": {
            "type": "zip",
            "url": "https://repo.example.test/dist/acme/acme-widget/1.2.0.zip",
            "shasum": hashlib.sha1(artifact).hexdigest(),
        },
    }


def test_transform_keeps_newest_first_order(transformer, storage, tmp_path):
    package = Package(slug="acme-dark", kind=PackageKind.THEME).with_releases(
        [("2.0.0", None), ("1.5.0", None), ("1.0.0", None)]
    )
    for version in package.releases:
        source = tmp_path / f"{version}.zip"
        source.write_bytes(version.encode())
        storage.move(source, f"acme-dark/acme-dark-{version}.zip")

    records = transformer.transform(package)

    assert list(records) == ["2.0.0", "1.5.0", "1.0.0"]
    assert {record["type"] for record in records.values()} == {"wordpress-theme"}


def test_unparseable_version_has_no_normalized_field(transformer, storage, tmp_path):
    package = Package(slug="acme-dark", kind=PackageKind.THEME).with_releases([("latest", None)])
    source = tmp_path / "latest.zip"
    source.write_bytes(b"zip")
    storage.move(source, "acme-dark/acme-dark-latest.zip")

    record = transformer.transform(package)["latest"]

    assert "version_normalized" not in record


def test_package_without_author_has_no_authors(transformer, storage, tmp_path):
    package = Package(slug="anon", kind=PackageKind.PLUGIN).with_releases([("1.0", None)])
    source = tmp_path / "anon.zip"
    source.write_bytes(b"zip")
    storage.move(source, "anon/anon-1.0.zip")

    assert transformer.transform(package)["1.0"]["authors"] == []


def test_transform_without_release_manager_requires_existing_artifact(settings, storage, plugin):
    transformer = ComposerPackageTransformer(settings, storage)

    with pytest.raises(FileNotFound):
        transformer.transform(plugin)


def test_download_url_quotes_path_segments(settings, storage):
    package = Package(slug="acme-widget", kind=PackageKind.PLUGIN).with_releases(
        [("1.0.0+build 7#2", None)]
    )
    transformer = ComposerPackageTransformer(settings, storage)

    url = transformer.download_url(package.get_release("1.0.0+build 7#2"))

    assert url == "https://repo.example.test/dist/acme/acme-widget/1.0.0%2Bbuild%207%232.zip"
