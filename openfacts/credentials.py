"""Open Prices credential loading and auth-method precedence."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

CREDENTIALS_FILENAME = "open_prices_credentials.json"
PROJECT_NAME = "openfacts"
DEFAULT_PRICES_API_URL = "https://prices.openfoodfacts.org/api/v1"
DEFAULT_SESSION_TIMEOUT = 3600

_TOKEN_PLACEHOLDER = "your_api_token_here"
_USERNAME_PLACEHOLDER = "your_openfoodfacts_username"
_PASSWORD_PLACEHOLDER = "your_openfoodfacts_password"

_TEMPLATE: dict[str, Any] = {
    "_comment": "Open Prices API credentials. Keep this file out of version control.",
    "_note": "Product lookups work without credentials; only Open Prices needs them.",
    "open_prices": {
        "auth_token": _TOKEN_PLACEHOLDER,
        "username": _USERNAME_PLACEHOLDER,
        "password": _PASSWORD_PLACEHOLDER,
        "api_url": DEFAULT_PRICES_API_URL,
        "app_name": "YourAppName/1.0",
        "session_timeout": DEFAULT_SESSION_TIMEOUT,
    },
}


class AuthMethod(Enum):
    NONE = "none"
    LOGIN_PASSWORD = "login_password"
    API_TOKEN = "api_token"

    @property
    def precedence(self) -> int:
        """Higher wins when several methods are usable."""
        return {
            AuthMethod.NONE: 0,
            AuthMethod.LOGIN_PASSWORD: 1,
            AuthMethod.API_TOKEN: 2,
        }[self]


def select_auth_method(*, has_token: bool, has_login: bool) -> AuthMethod:
    """Pick the usable method with the highest precedence."""
    usable = [AuthMethod.NONE]
    if has_token:
        usable.append(AuthMethod.API_TOKEN)
    if has_login:
        usable.append(AuthMethod.LOGIN_PASSWORD)
    return max(usable, key=lambda m: m.precedence)


@dataclass(frozen=True)
class CredentialBundle:
    """Resolved authentication parameters. Secrets are kept out of repr."""

    method: AuthMethod = AuthMethod.NONE
    token: str | None = field(default=None, repr=False)
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    session_timeout: int = DEFAULT_SESSION_TIMEOUT

    @classmethod
    def for_token(cls, token: str) -> CredentialBundle:
        return cls(method=AuthMethod.API_TOKEN, token=token)

    @classmethod
    def for_login(
        cls,
        username: str,
        password: str,
        session_timeout: int = DEFAULT_SESSION_TIMEOUT,
    ) -> CredentialBundle:
        return cls(
            method=AuthMethod.LOGIN_PASSWORD,
            username=username,
            password=password,
            session_timeout=session_timeout,
        )


def _usable(value: Any, placeholder: str) -> str | None:
    if isinstance(value, str) and value and value != placeholder:
        return value
    return None


def find_credentials_file(
    filename: str = CREDENTIALS_FILENAME,
    start: str | Path | None = None,
) -> Path:
    """Locate the credential file.

    Order: ``tests/<filename>``, then the nearest parent directory whose
    pyproject.toml names this project, then the current directory.
    """
    cwd = Path(start) if start is not None else Path.cwd()

    test_file = cwd / "tests" / filename
    if test_file.exists():
        return test_file

    for directory in (cwd, *cwd.parents):
        pyproject = directory / "pyproject.toml"
        if pyproject.exists() and _names_project(pyproject):
            return directory / filename

    return cwd / filename


def _names_project(pyproject: Path) -> bool:
    if tomllib is None:
        raise ImportError("tomli is required on Python < 3.11: pip install tomli")
    try:
        with open(pyproject, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return data.get("project", {}).get("name") == PROJECT_NAME


def write_template(path: str | Path) -> None:
    """Write a placeholder credential file for the user to fill in."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_TEMPLATE, indent=2) + "\n", encoding="utf-8")
    logger.info("Created Open Prices credential template: %s", path)


class CredentialStore:
    """Holds the Open Prices credential document and resolves a bundle.

    File values win; ``OPEN_PRICES_AUTH_TOKEN``, ``OPEN_PRICES_USERNAME``
    and ``OPEN_PRICES_PASSWORD`` fill whatever the file leaves empty.
    """

    def __init__(
        self,
        data: dict[str, Any] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._data = data
        self._environ = environ if environ is not None else os.environ
        self._path: Path | None = None

    @property
    def source_path(self) -> Path | None:
        return self._path

    def load(self, path: str | Path | None = None, *, create_template: bool = True) -> bool:
        """Load the credential file. Returns True if a file was read.

        A missing file is not an error: the store stays empty (read-only
        mode) and, if ``create_template`` is set, a template is written.
        Unreadable or malformed files are logged and leave the store empty.
        """
        file = Path(path).expanduser() if path else find_credentials_file()
        self._path = file
        self._data = None

        if not file.exists():
            if create_template:
                try:
                    write_template(file)
                except OSError as e:
                    logger.warning("Could not write credential template %s: %s", file, e)
            return False

        try:
            raw = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Error loading Open Prices credentials from %s: %s", file, e)
            return False

        if not isinstance(raw, dict):
            logger.warning("Ignoring credential file %s: not a JSON object", file)
            return False

        self._data = raw
        logger.info("Loaded Open Prices credentials from %s", file)
        return True

    def reload(self) -> bool:
        path = self._path
        self.clear()
        return self.load(path)

    def clear(self) -> None:
        """Drop every loaded secret."""
        self._data = None

    @property
    def _section(self) -> dict[str, Any]:
        section = (self._data or {}).get("open_prices")
        return section if isinstance(section, dict) else {}

    @property
    def has_credentials(self) -> bool:
        return self._data is not None

    @property
    def auth_token(self) -> str | None:
        return _usable(self._section.get("auth_token"), _TOKEN_PLACEHOLDER) or _usable(
            self._environ.get("OPEN_PRICES_AUTH_TOKEN"), _TOKEN_PLACEHOLDER
        )

    @property
    def username(self) -> str | None:
        return _usable(self._section.get("username"), _USERNAME_PLACEHOLDER) or _usable(
            self._environ.get("OPEN_PRICES_USERNAME"), _USERNAME_PLACEHOLDER
        )

    @property
    def password(self) -> str | None:
        return _usable(self._section.get("password"), _PASSWORD_PLACEHOLDER) or _usable(
            self._environ.get("OPEN_PRICES_PASSWORD"), _PASSWORD_PLACEHOLDER
        )

    @property
    def api_url(self) -> str:
        return self._section.get("api_url") or DEFAULT_PRICES_API_URL

    @property
    def app_name(self) -> str | None:
        return self._section.get("app_name")

    @property
    def session_timeout(self) -> int:
        value = self._section.get("session_timeout", DEFAULT_SESSION_TIMEOUT)
        try:
            return int(value)
        except (TypeError, ValueError):
            return DEFAULT_SESSION_TIMEOUT

    @property
    def has_auth_token(self) -> bool:
        return self.auth_token is not None

    @property
    def has_login_credentials(self) -> bool:
        return self.username is not None and self.password is not None

    @property
    def preferred_auth_method(self) -> AuthMethod:
        return select_auth_method(
            has_token=self.has_auth_token,
            has_login=self.has_login_credentials,
        )

    def resolve(self) -> CredentialBundle:
        match self.preferred_auth_method:
            case AuthMethod.API_TOKEN:
                return CredentialBundle.for_token(self.auth_token)  # type: ignore[arg-type]
            case AuthMethod.LOGIN_PASSWORD:
                return CredentialBundle.for_login(
                    self.username,  # type: ignore[arg-type]
                    self.password,  # type: ignore[arg-type]
                    session_timeout=self.session_timeout,
                )
            case _:
                return CredentialBundle()
