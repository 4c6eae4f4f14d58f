import json

import pytest

from composer_hub import cli
from composer_hub.repo.api_keys import create_api_key, list_api_keys, resolve_api_key
from composer_hub.services.repository_service import RepositoryService


@pytest.fixture
def service(settings, plugin, storage, archiver, monkeypatch):
    service = RepositoryService(settings=settings, packages=[plugin], storage=storage, archiver=archiver)
    monkeypatch.setattr(cli, "_load_service", lambda: service)
    return service


def test_create_key_round_trips(capsys):
    assert cli.main(["create-key", "alice", "--name", "ci"]) == 0

    output = capsys.readouterr().out
    token = output.strip().rsplit(" ", 1)[-1]
    api_key = resolve_api_key(token)
    assert api_key.user_id == "alice"
    assert api_key.name == "ci"


def test_list_keys(capsys):
    alice = create_api_key("alice", "laptop")
    create_api_key("bob")

    assert cli.main(["list-keys", "--user", "alice"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [f"{alice.id}\talice\tlaptop\tnever"]


def test_revoke_key(capsys):
    api_key = create_api_key("alice")

    assert cli.main(["revoke-key", api_key.id]) == 0
    assert list_api_keys("alice") == []
    assert cli.main(["revoke-key", api_key.id]) == 1
    assert "not found" in capsys.readouterr().err


def test_build_index_writes_packages_json(service, tmp_path, capsys):
    output = tmp_path / "packages.json"

    assert cli.main(["build-index", "--output", str(output)]) == 0

    document = json.loads(output.read_text(encoding="utf-8"))
    assert list(document["packages"]) == ["acme/acme-widget"]
    assert "Wrote 1 packages" in capsys.readouterr().out


def test_archive_rebuilds_release(service, storage):
    assert cli.main(["archive", "acme-widget", "1.2.0"]) == 0
    assert storage.exists("acme-widget/acme-widget-1.2.0.zip")


def test_archive_reports_unknown_package_and_version(service, capsys):
    assert cli.main(["archive", "missing", "1.0"]) == 1
    assert cli.main(["archive", "acme-widget", "9.9.9", "--kind", "plugin"]) == 1
    assert cli.main(["archive", "acme-widget", "1.2.0", "--kind", "theme"]) == 1

    err = capsys.readouterr().err
    assert "'missing' not found" in err
    assert "9.9.9" in err


def test_migrate(capsys):
    assert cli.main(["migrate"]) == 0
    assert "up to date" in capsys.readouterr().out


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])
