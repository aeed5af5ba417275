"""Tests for the dropkit command-line interface.

Commands run through Typer's CliRunner against an isolated config
directory.  The client's transport and the login driver are replaced with
scripted doubles so no browser or network is involved.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import pytest

from dropkit import __version__
from dropkit.app import app
from dropkit.auth.credential_store import CredentialFile
from dropkit.client.api import StorageClient
from dropkit.config import load_global_config, load_profile, profile_exists
from dropkit.exceptions import TransportError

LINKED = {
    "consumer_key": "app-key",
    "consumer_secret": "app-secret",
    "token": "user-token",
    "token_secret": "user-secret",
    "uid": "4242",
}


def _default_handler(request: dict[str, Any]) -> Any:
    url = request["url"]
    if url.endswith("/oauth/request_token"):
        return "oauth_token=req-token&oauth_token_secret=req-secret"
    if url.endswith("/oauth/access_token"):
        return "oauth_token=acc-token&oauth_token_secret=acc-secret&uid=12345"
    return {}


@pytest.fixture
def env(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("APP_KEY", "app-key")
    monkeypatch.setenv("APP_SECRET", "app-secret")
    return isolated_config


@pytest.fixture
def profile(env: Path, cli_runner) -> str:
    result = cli_runner.invoke(app, [
        "init", "work",
        "--consumer-key-source", "env:APP_KEY",
        "--consumer-secret-source", "env:APP_SECRET",
    ])
    assert result.exit_code == 0, result.output
    return "work"


@pytest.fixture
def transport(make_transport, monkeypatch: pytest.MonkeyPatch):
    """Route every CLI-built client through a recording transport."""
    recording = make_transport(_default_handler)

    def factory(config, driver=None):
        return StorageClient(config, driver=driver, transport=recording)

    monkeypatch.setattr("dropkit.commands.session.StorageClient", factory)
    return recording


@pytest.fixture
def use_driver(monkeypatch: pytest.MonkeyPatch, make_driver):
    """Install a scripted login driver; returns a setter for failure mode."""

    def install(error: Optional[str] = None):
        driver = make_driver(error=error)
        monkeypatch.setattr("dropkit.commands.auth.make_driver", lambda manual, port, timeout: driver)
        return driver

    return install


def _respond(transport, handler) -> None:
    transport._handler = handler


class TestGlobal:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"dropkit {__version__}" in result.output

    def test_no_profile(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["auth", "status"])
        assert result.exit_code == 1
        assert "No profile configured" in result.output


class TestInit:
    def test_creates_profile(self, profile: str) -> None:
        assert profile_exists("work")
        loaded = load_profile("work")
        assert loaded.consumer_key_source == "env:APP_KEY"
        assert loaded.use_sandbox_root is False

    def test_sandbox_and_server(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, [
            "init", "dev", "--sandbox", "--default",
            "--consumer-key-source", "env:APP_KEY",
            "--consumer-secret-source", "file:/run/secret",
            "--api-server", "http://api.localtest.me:8080/",
        ])
        assert result.exit_code == 0, result.output
        loaded = load_profile("dev")
        assert loaded.use_sandbox_root is True
        assert loaded.api_server_base == "http://api.localtest.me:8080"
        assert load_global_config().default_profile == "dev"

    def test_invalid_name(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, [
            "init", "../x", "--consumer-key-source", "prompt", "--consumer-secret-source", "prompt",
        ])
        assert result.exit_code == 2

    def test_invalid_source(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, [
            "init", "x", "--consumer-key-source", "APP_KEY", "--consumer-secret-source", "prompt",
        ])
        assert result.exit_code == 2
        assert "expected env:VAR" in result.output

    def test_missing_source(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["init", "x", "--consumer-key-source", "env:APP_KEY"])
        assert result.exit_code == 2
        assert "--consumer-secret-source" in result.output
        assert not profile_exists("x")

    def test_delete_removes_profile_and_token(self, env: Path, cli_runner) -> None:
        created = cli_runner.invoke(app, [
            "init", "work", "--default",
            "--consumer-key-source", "env:APP_KEY",
            "--consumer-secret-source", "env:APP_SECRET",
        ])
        assert created.exit_code == 0, created.output
        CredentialFile("work").save(LINKED)

        result = cli_runner.invoke(app, ["init", "work", "--delete"])

        assert result.exit_code == 0, result.output
        assert not profile_exists("work")
        assert CredentialFile("work").load() is None
        assert load_global_config().default_profile is None

    def test_delete_unknown_profile(self, env: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["init", "ghost", "--delete"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestAuth:
    def test_login_stores_credentials(self, profile, transport, use_driver, cli_runner) -> None:
        driver = use_driver()
        result = cli_runner.invoke(app, ["auth", "login"])

        assert result.exit_code == 0, result.output
        assert "Linked user 12345" in result.output
        assert len(driver.urls) == 1
        assert CredentialFile("work").load() == {
            "consumer_key": "app-key",
            "consumer_secret": "app-secret",
            "token": "acc-token",
            "token_secret": "acc-secret",
            "uid": "12345",
        }

    def test_failed_login_removes_stored_token(
        self, profile, transport, use_driver, cli_runner
    ) -> None:
        CredentialFile("work").save(LINKED)
        use_driver(error="User declined the authorization request")

        result = cli_runner.invoke(app, ["auth", "login"])

        assert result.exit_code == 3
        assert "declined" in result.output
        assert CredentialFile("work").load() is None

    def test_status_unlinked(self, profile, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--plain", "auth", "status"])
        assert result.exit_code == 0
        assert "Linked\tno" in result.output

    def test_status_linked_json(self, profile, cli_runner) -> None:
        CredentialFile("work").save(LINKED)
        result = cli_runner.invoke(app, ["--json", "--quiet", "auth", "status"])
        assert result.exit_code == 0, result.output
        rows = {row["Field"]: row["Value"] for row in json.loads(result.output)}
        assert rows["Linked"] == "yes"
        assert rows["User id"] == "4242"

    def test_status_ignores_partial_snapshot(self, profile, cli_runner) -> None:
        CredentialFile("work").save({**LINKED, "token_secret": ""})
        result = cli_runner.invoke(app, ["--plain", "auth", "status"])
        assert result.exit_code == 0, result.output
        assert "Ignoring stored credentials" in result.output
        assert "Linked\tno" in result.output

    def test_logout(self, profile, cli_runner) -> None:
        CredentialFile("work").save(LINKED)
        result = cli_runner.invoke(app, ["auth", "logout"])
        assert result.exit_code == 0
        assert CredentialFile("work").load() is None

        again = cli_runner.invoke(app, ["auth", "logout"])
        assert again.exit_code == 0
        assert "No account is linked" in again.output


class TestFiles:
    @pytest.fixture(autouse=True)
    def _linked(self, profile: str) -> None:
        CredentialFile(profile).save(LINKED)

    def test_ls(self, transport, cli_runner) -> None:
        _respond(transport, lambda request: {
            "is_dir": True,
            "path": "/Photos",
            "contents": [
                {"path": "/Photos/a.jpg", "is_dir": False, "size": "1 KB", "modified": "today"},
                {"path": "/Photos/Trips", "is_dir": True},
            ],
        })
        result = cli_runner.invoke(app, ["--plain", "files", "ls", "/Photos"])

        assert result.exit_code == 0, result.output
        assert "file\t1 KB\ttoday\t/Photos/a.jpg" in result.output
        assert "dir\t-\t\t/Photos/Trips" in result.output
        request = transport.requests[0]
        assert request["url"] == "https://api.dropbox.com/1/metadata/dropbox/Photos"
        assert request["params"]["list"] == "true"
        assert 'oauth_token="user-token"' in request["authorization"]

    def test_not_linked(self, transport, cli_runner) -> None:
        CredentialFile("work").clear()
        result = cli_runner.invoke(app, ["files", "ls", "/"])
        assert result.exit_code == 3
        assert "dropkit auth login" in result.output
        assert transport.requests == []

    def test_not_found_exit_code(self, transport, cli_runner) -> None:
        def missing(request):
            raise TransportError("HTTP 404: Path not found", status_code=404)

        _respond(transport, missing)
        result = cli_runner.invoke(app, ["files", "info", "/nope"])
        assert result.exit_code == 4
        assert "Path not found" in result.output

    def test_info_json(self, transport, cli_runner) -> None:
        _respond(transport, lambda request: {"path": "/a.txt", "rev": "abc"})
        result = cli_runner.invoke(app, ["--json", "files", "info", "/a.txt"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"path": "/a.txt", "rev": "abc"}

    def test_get_to_file(self, transport, cli_runner, tmp_path: Path) -> None:
        _respond(transport, lambda request: b"file-bytes")
        target = tmp_path / "out.bin"
        result = cli_runner.invoke(app, ["files", "get", "/a.bin", "--output", str(target)])

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"file-bytes"
        assert transport.requests[0]["url"] == "https://api-content.dropbox.com/1/files/dropbox/a.bin"

    def test_put(self, transport, cli_runner, tmp_path: Path) -> None:
        source = tmp_path / "notes.txt"
        source.write_bytes(b"hello")
        _respond(transport, lambda request: {"path": "/Docs/notes.txt", "rev": "1"})

        result = cli_runner.invoke(
            app, ["files", "put", str(source), "/Docs/notes.txt", "--overwrite"]
        )

        assert result.exit_code == 0, result.output
        request = transport.requests[0]
        assert request["method"] == "PUT"
        assert request["body"] == b"hello"
        assert request["params"] == {"overwrite": "true"}

    def test_mkdir_rm_mv_cp(self, transport, cli_runner) -> None:
        for args in (["mkdir", "/New"], ["rm", "/Old"], ["mv", "/a", "/b"], ["cp", "/a", "/c"]):
            result = cli_runner.invoke(app, ["files", *args])
            assert result.exit_code == 0, result.output

        urls = [r["url"].rsplit("/", 1)[-1] for r in transport.requests]
        assert urls == ["create_folder", "delete", "move", "copy"]
        assert transport.requests[0]["params"]["path"] == "/New"

    def test_cp_from_ref(self, transport, cli_runner) -> None:
        result = cli_runner.invoke(app, ["files", "cp", "--ref", "REF1", "/dest"])
        assert result.exit_code == 0, result.output
        params = transport.requests[0]["params"]
        assert params["from_copy_ref"] == "REF1"
        assert "from_path" not in params

    def test_share_prints_url(self, transport, cli_runner) -> None:
        _respond(transport, lambda request: {"url": "https://db.tt/abc", "expires": "never"})
        result = cli_runner.invoke(app, ["files", "share", "/a.txt"])
        assert result.exit_code == 0
        assert "https://db.tt/abc" in result.output

    def test_revisions_and_restore(self, transport, cli_runner) -> None:
        _respond(transport, lambda request: [{"rev": "r1", "size": "1 KB", "modified": "x"}])
        result = cli_runner.invoke(app, ["--plain", "files", "revisions", "/a.txt"])
        assert result.exit_code == 0
        assert "r1\t1 KB\tx\t" in result.output

        _respond(transport, lambda request: {"rev": "r1"})
        result = cli_runner.invoke(app, ["files", "restore", "/a.txt", "r1"])
        assert result.exit_code == 0
        assert transport.requests[-1]["params"]["rev"] == "r1"

    def test_delta_and_account(self, transport, cli_runner) -> None:
        _respond(transport, lambda request: {"entries": [], "cursor": "c2", "has_more": False})
        result = cli_runner.invoke(app, ["files", "delta", "--cursor", "c1"])
        assert result.exit_code == 0
        assert transport.requests[0]["params"]["cursor"] == "c1"
        assert "c2" in result.output

        result = cli_runner.invoke(app, ["files", "account"])
        assert result.exit_code == 0
        assert transport.requests[-1]["url"] == "https://api.dropbox.com/1/account/info"
