from pathlib import Path

import pytest

from composer_hub.exceptions import InvalidReleaseVersion
from composer_hub.packages.models import Package, PackageKind, Release


def _package(**overrides):
    values = {"slug": "acme-widget", "kind": PackageKind.PLUGIN}
    values.update(overrides)
    return Package(**values)


def test_releases_keep_order_and_back_reference():
    package = _package().with_releases([("2.0.0", None), ("1.0.0", "https://example.test/1.zip")])

    assert list(package.releases) == ["2.0.0", "1.0.0"]
    assert package.get_latest_version() == "2.0.0"
    assert package.get_release("1.0.0").source_url == "https://example.test/1.zip"
    assert package.get_release("1.0.0").package is package


def test_release_file_depends_only_on_slug_and_version():
    plugin = _package().with_releases([("1.0", None)])
    theme = _package(kind=PackageKind.THEME).with_releases([("1.0", None)])

    assert plugin.get_release("1.0").file == "acme-widget/acme-widget-1.0.zip"
    assert theme.get_release("1.0").file == plugin.get_release("1.0").file
    assert theme.get_release("1.0").key != plugin.get_release("1.0").key


def test_unknown_version_raises():
    package = _package().with_releases([("1.0", None)])

    with pytest.raises(InvalidReleaseVersion):
        package.get_release("2.0")


def test_package_without_releases():
    package = _package()

    assert package.has_releases() is False
    with pytest.raises(InvalidReleaseVersion):
        package.get_latest_release()


def test_duplicate_versions_are_rejected():
    with pytest.raises(ValueError):
        _package().with_releases([("1.0", None), ("1.0", None)])


def test_single_file_themes_are_rejected():
    with pytest.raises(ValueError):
        _package(kind=PackageKind.THEME, is_single_file=True)


def test_kind_and_directory_are_coerced():
    package = _package(kind="theme", directory="/srv/themes/acme")

    assert package.kind is PackageKind.THEME
    assert package.directory == Path("/srv/themes/acme")
    assert package.composer_type == "wordpress-theme"
    assert package.is_installed() is True


def test_main_file():
    assert _package().main_file is None
    assert _package(directory="/srv/plugins/acme-widget").main_file == Path("/srv/plugins/acme-widget")
    single = _package(directory="/srv/plugins", is_single_file=True)
    assert single.main_file == Path("/srv/plugins/acme-widget.php")


def test_name_defaults_to_slug():
    assert _package().name == "acme-widget"
    assert _package(name="Acme Widget").name == "Acme Widget"


def test_release_str():
    release = _package().with_releases([("1.0", None)]).get_release("1.0")

    assert isinstance(release, Release)
    assert str(release) == "acme-widget 1.0"
