"""Shared request handling for authenticated Aurion pages."""

from urllib.parse import urlsplit

import requests

from webaurion.errors import (
    FetchNetworkError,
    FetchTimeoutError,
    SessionExpiredError,
)
from webaurion.jsf import get_partial_redirect, looks_like_login_page
from webaurion.logging import get_logger

log = get_logger(__name__)


def is_login_url(url: str) -> bool:
    """True if `url` points at Aurion's login form (".../login", "login?error")."""
    path = urlsplit(url).path.rstrip("/").lower()
    return path.endswith("/login") or path == "login"


def snippet(markup: str | bytes, limit: int = 200) -> str:
    """Short, single-line excerpt of a response body for error messages."""
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="replace")
    return " ".join(markup.split())[:limit]


class AurionPage:
    """Base class for a page reached with an authenticated requests.Session.

    Redirects are never followed: Aurion signals both "menu entry selected"
    and "session gone" with a 302, and only the latter is an error.
    """

    URL_PATH = ""

    def __init__(self, http: requests.Session, base_url: str, *, timeout: float) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.URL_PATH}"

    def _request(self, method: str, data: dict[str, str] | None = None) -> requests.Response:
        try:
            response = self.http.request(
                method,
                self.url,
                data=data,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.Timeout as e:
            log.warning("request_timeout", method=method, url=self.url, timeout=self.timeout)
            raise FetchTimeoutError(f"{method} {self.url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            log.error("request_failed", method=method, url=self.url, error=str(e))
            raise FetchNetworkError(f"{method} {self.url} failed: {e}") from e

        location = response.headers.get("Location", "")
        if response.is_redirect and is_login_url(location):
            log.info("session_rejected", url=self.url, location=location)
            raise SessionExpiredError(f"Aurion redirected {self.URL_PATH} to the login page")
        if response.status_code in (401, 403):
            log.info("session_rejected", url=self.url, status=response.status_code)
            raise SessionExpiredError(f"Aurion refused {self.URL_PATH} (HTTP {response.status_code})")
        if response.status_code >= 400:
            log.error("http_error", url=self.url, status=response.status_code)
            raise FetchNetworkError(f"HTTP {response.status_code} from {self.url}")
        return response

    def _get(self) -> requests.Response:
        response = self._request("GET")
        if response.status_code == 200 and looks_like_login_page(response.content):
            log.info("session_rejected", url=self.url, reason="login_form_served")
            raise SessionExpiredError(f"Aurion served the login form instead of {self.URL_PATH}")
        return response

    def _post(self, data: dict[str, str]) -> requests.Response:
        response = self._request("POST", data=data)
        # AJAX requests are redirected inside the partial response, not with a 302
        redirect = get_partial_redirect(response.content)
        if redirect is not None and is_login_url(redirect):
            log.info("session_rejected", url=self.url, location=redirect, reason="partial_redirect")
            raise SessionExpiredError(f"Aurion redirected {self.URL_PATH} to the login page")
        return response
