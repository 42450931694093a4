"""OAuth2 credential handling for the Calendar API.

The cached token lives in ``token.json`` next to the OAuth client secrets
(``credentials.json``) in the state directory. On first use the installed-app
consent flow runs in the browser and the resulting token, including its
refresh token, is cached for later invocations.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Protocol, Sequence

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .google_calendar import CalendarAuthError, CalendarError, is_auth_failure


logger = logging.getLogger(__name__)

# Event write access is all clock-out needs; listing works with it too.
SCOPES = ["https://www.googleapis.com/auth/calendar.events"]


class CredentialError(RuntimeError):
    """Raised when credentials cannot be loaded, obtained, or cached."""


class CredentialProvider(Protocol):
    """Supplies bearer tokens and can forget the cached credential."""

    def access_token(self) -> str: ...

    def invalidate(self) -> None: ...


class GoogleCredentialProvider:
    """Credential provider backed by google-auth and a cached token file."""

    def __init__(
        self,
        client_secrets_path: Path,
        token_path: Path,
        scopes: Sequence[str] = SCOPES,
    ) -> None:
        self.client_secrets_path = Path(client_secrets_path)
        self.token_path = Path(token_path)
        self.scopes = list(scopes)
        self._credentials: Optional[Credentials] = None

    def access_token(self) -> str:
        """Return a valid access token, refreshing or authorizing as needed.

        Raises:
            CalendarAuthError: if Google reports the refresh token expired or revoked.
            CalendarError: if the token endpoint cannot be reached.
            CredentialError: if client secrets are missing or the token cannot be cached.
        """
        creds = self._load()
        if creds is None:
            creds = self._authorize()
        elif not creds.valid:
            creds = self._refresh(creds)
        self._credentials = creds
        return creds.token

    def ensure_authorized(self) -> None:
        """Run the consent flow now if no token is cached yet."""
        if self._load() is None:
            self._credentials = self._authorize()

    def invalidate(self) -> None:
        """Delete the cached token so the next run re-authorizes."""
        self._credentials = None
        try:
            self.token_path.unlink(missing_ok=True)
        except OSError as exc:
            raise CredentialError(f"Unable to remove cached token {self.token_path}: {exc}") from exc
        logger.info(f"Removed cached token {self.token_path}")

    def _load(self) -> Optional[Credentials]:
        if self._credentials is not None:
            return self._credentials
        if not self.token_path.exists():
            return None
        try:
            return Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
        except ValueError as exc:
            # Malformed or refresh-token-less cache: start over with consent.
            logger.warning(f"Ignoring unusable cached token {self.token_path}: {exc}")
            return None
        except OSError as exc:
            raise CredentialError(f"Unable to read cached token {self.token_path}: {exc}") from exc

    def _refresh(self, creds: Credentials) -> Credentials:
        if not creds.refresh_token:
            return self._authorize()
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            if is_auth_failure(None, str(exc)):
                raise CalendarAuthError(f"Google OAuth token refresh rejected: {exc}") from exc
            raise CalendarError(f"Google OAuth token refresh failed: {exc}") from exc
        except TransportError as exc:
            raise CalendarError(f"Google OAuth token network error: {exc}") from exc
        self._save(creds)
        return creds

    def _authorize(self) -> Credentials:
        if not self.client_secrets_path.exists():
            raise CredentialError(
                f"Unable to read client secret file {self.client_secrets_path}. "
                "Download the OAuth client credentials.json from Google Cloud Console."
            )
        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.client_secrets_path), self.scopes
            )
        except ValueError as exc:
            raise CredentialError(
                f"Unable to parse client secret file {self.client_secrets_path}: {exc}"
            ) from exc

        creds = flow.run_local_server(port=0, access_type="offline", prompt="consent")
        self._save(creds)
        return creds

    def _save(self, creds: Credentials) -> None:
        logger.info(f"Saving credential file to: {self.token_path}")
        try:
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(creds.to_json())
        except OSError as exc:
            raise CredentialError(f"Unable to cache oauth token: {exc}") from exc
