"""Tests for Open Prices credential loading and precedence."""

import json

import pytest

from openfacts.credentials import (
    CREDENTIALS_FILENAME,
    DEFAULT_SESSION_TIMEOUT,
    AuthMethod,
    CredentialBundle,
    CredentialStore,
    find_credentials_file,
    select_auth_method,
)


def _doc(**fields) -> dict:
    return {"open_prices": fields}


class TestPrecedence:
    def test_token_beats_login(self):
        assert select_auth_method(has_token=True, has_login=True) is AuthMethod.API_TOKEN

    def test_login_when_no_token(self):
        assert select_auth_method(has_token=False, has_login=True) is AuthMethod.LOGIN_PASSWORD

    def test_none_when_nothing_usable(self):
        assert select_auth_method(has_token=False, has_login=False) is AuthMethod.NONE

    def test_precedence_ordering(self):
        assert (
            AuthMethod.API_TOKEN.precedence
            > AuthMethod.LOGIN_PASSWORD.precedence
            > AuthMethod.NONE.precedence
        )


def test_resolve_token_over_login():
    """Both a token and a login are configured: the token wins."""
    store = CredentialStore(
        _doc(auth_token="tok-123", username="alice", password="secret"), environ={}
    )
    bundle = store.resolve()
    assert bundle.method is AuthMethod.API_TOKEN
    assert bundle.token == "tok-123"


def test_resolve_login_with_timeout():
    store = CredentialStore(
        _doc(username="alice", password="secret", session_timeout=120), environ={}
    )
    bundle = store.resolve()
    assert bundle == CredentialBundle.for_login("alice", "secret", session_timeout=120)


def test_placeholders_are_ignored():
    """Template placeholders never count as credentials."""
    store = CredentialStore(
        _doc(
            auth_token="your_api_token_here",
            username="your_openfoodfacts_username",
            password="your_openfoodfacts_password",
        ),
        environ={},
    )
    assert store.has_auth_token is False
    assert store.has_login_credentials is False
    assert store.resolve().method is AuthMethod.NONE


def test_environment_fills_missing_fields():
    store = CredentialStore(
        _doc(username="alice"),
        environ={"OPEN_PRICES_PASSWORD": "from-env", "OPEN_PRICES_USERNAME": "bob"},
    )
    # the file value wins, the env fills the gap
    assert store.username == "alice"
    assert store.password == "from-env"
    assert store.preferred_auth_method is AuthMethod.LOGIN_PASSWORD


def test_token_from_environment_only():
    store = CredentialStore(environ={"OPEN_PRICES_AUTH_TOKEN": "env-token"})
    assert store.has_credentials is False
    assert store.resolve() == CredentialBundle.for_token("env-token")


def test_invalid_session_timeout_falls_back():
    store = CredentialStore(_doc(session_timeout="soon"), environ={})
    assert store.session_timeout == DEFAULT_SESSION_TIMEOUT


def test_bundle_repr_hides_secrets():
    bundle = CredentialBundle.for_login("alice", "hunter2")
    assert "hunter2" not in repr(bundle)
    assert "tok" not in repr(CredentialBundle.for_token("tok"))


def test_load_reads_file(tmp_path):
    path = tmp_path / CREDENTIALS_FILENAME
    path.write_text(
        json.dumps(_doc(auth_token="file-token", api_url="http://prices.test/api/v1"))
    )
    store = CredentialStore(environ={})
    assert store.load(path) is True
    assert store.source_path == path
    assert store.auth_token == "file-token"
    assert store.api_url == "http://prices.test/api/v1"


def test_load_missing_file_writes_template(tmp_path):
    """A missing file yields read-only mode plus a template to fill in."""
    path = tmp_path / "conf" / CREDENTIALS_FILENAME
    store = CredentialStore(environ={})
    assert store.load(path) is False
    assert path.exists()

    template = json.loads(path.read_text())
    assert template["open_prices"]["auth_token"] == "your_api_token_here"
    assert template["open_prices"]["session_timeout"] == DEFAULT_SESSION_TIMEOUT

    # the template itself is not usable
    assert store.load(path) is True
    assert store.resolve().method is AuthMethod.NONE


def test_load_missing_file_without_template(tmp_path):
    path = tmp_path / CREDENTIALS_FILENAME
    assert CredentialStore(environ={}).load(path, create_template=False) is False
    assert not path.exists()


def test_load_malformed_file(tmp_path):
    path = tmp_path / CREDENTIALS_FILENAME
    path.write_text("{not json")
    store = CredentialStore(environ={})
    assert store.load(path) is False
    assert store.has_credentials is False


def test_clear_and_reload(tmp_path):
    path = tmp_path / CREDENTIALS_FILENAME
    path.write_text(json.dumps(_doc(auth_token="first")))
    store = CredentialStore(environ={})
    store.load(path)

    store.clear()
    assert store.has_credentials is False
    assert store.auth_token is None

    path.write_text(json.dumps(_doc(auth_token="second")))
    assert store.reload() is True
    assert store.auth_token == "second"


class TestDiscovery:
    def test_prefers_tests_directory(self, tmp_path):
        (tmp_path / "tests").mkdir()
        target = tmp_path / "tests" / CREDENTIALS_FILENAME
        target.write_text("{}")
        assert find_credentials_file(start=tmp_path) == target

    def test_finds_project_root_upwards(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "openfacts"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_credentials_file(start=nested) == tmp_path / CREDENTIALS_FILENAME

    def test_ignores_other_projects(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "something-else"\n')
        nested = tmp_path / "pkg"
        nested.mkdir()
        assert find_credentials_file(start=nested) == nested / CREDENTIALS_FILENAME


@pytest.mark.parametrize("value", ["", None, 42])
def test_unusable_token_values(value):
    store = CredentialStore(_doc(auth_token=value), environ={})
    assert store.auth_token is None
