"""Aurion session management.

SessionManager performs the login handshake, turns its cookies into an
immutable Session value, and rebuilds an authenticated requests.Session from
that value for every call. Nothing is kept between calls, so one process can
hold sessions for several users.
"""

import requests

from webaurion.errors import (
    AuthNetworkError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    SessionExpiredError,
    UnexpectedResponseError,
)
from webaurion.jsf import get_sidebar_form_id, get_view_state
from webaurion.logging import get_logger
from webaurion.models import Session
from webaurion.pages.base import is_login_url

logger = get_logger(__name__)


class SessionManager:
    """Creates, validates and ends Aurion sessions.

    Expired sessions are refused, never silently renewed: the caller decides
    whether to log in again.
    """

    LOGIN_PATH = "/login"
    LOGOUT_PATH = "/logout"
    LANDING_PATH = "/"

    USERNAME_FIELD = "username"
    PASSWORD_FIELD = "password"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_session_age_hours: int = 24,
        user_agent: str | None = None,
    ) -> None:
        """Initialize SessionManager.

        Args:
            base_url: Aurion service URL, e.g. https://web.isen-ouest.fr/webAurion.
            timeout: Timeout in seconds for each request.
            max_session_age_hours: Age after which a session is refused.
            user_agent: Optional User-Agent header.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_session_age_hours = max_session_age_hours
        self.user_agent = user_agent

    def http_for(self, session: Session | None = None) -> requests.Session:
        """Build a fresh requests.Session, carrying `session`'s cookies if given."""
        http = requests.Session()
        if self.user_agent:
            http.headers["User-Agent"] = self.user_agent
        if session is not None:
            http.cookies.update(session.cookies)
        return http

    def is_session_valid(self, session: Session | None) -> bool:
        """Check that a session exists and is younger than max_session_age_hours."""
        if session is None:
            logger.debug("session_check", result="missing")
            return False
        if session.is_expired(self.max_session_age_hours):
            logger.info(
                "session_check",
                result="expired",
                age_hours=session.age().total_seconds() / 3600,
                max_hours=self.max_session_age_hours,
            )
            return False
        return True

    def require_session(self, session: Session | None) -> Session:
        """Return `session` if usable, else raise.

        Raises:
            NotAuthenticatedError: No session given (login was never called).
            SessionExpiredError: Session older than max_session_age_hours.
        """
        if session is None:
            raise NotAuthenticatedError("Not logged in: call login() first")
        if not self.is_session_valid(session):
            raise SessionExpiredError(
                f"Session of {session.username} is older than {self.max_session_age_hours}h"
            )
        return session

    def login(self, username: str, password: str) -> Session:
        """Submit credentials and capture the resulting session.

        Args:
            username: Aurion username.
            password: Aurion password (used for this request only).

        Returns:
            Session holding Aurion's cookies and the main page view state.

        Raises:
            InvalidCredentialsError: Aurion rejected the credentials.
            AuthNetworkError: Aurion could not be reached or timed out.
            UnexpectedResponseError: The handshake response was unusable.
        """
        login_url = f"{self.base_url}{self.LOGIN_PATH}"
        logger.info("authentication_started", url=login_url, username=username)

        with self.http_for() as http:
            response = self._send(
                http,
                "POST",
                login_url,
                data={self.USERNAME_FIELD: username, self.PASSWORD_FIELD: password},
            )
            self._check_login_response(response)

            cookies = http.cookies.get_dict()
            if not cookies:
                logger.error("authentication_failed", reason="no_session_cookie")
                raise UnexpectedResponseError("Aurion accepted the login but set no session cookie")

            # Aurion's landing page carries the view state every later form POST echoes
            landing = self._send(http, "GET", f"{self.base_url}{self.LANDING_PATH}")
            if landing.status_code != 200 or is_login_url(landing.url):
                logger.error(
                    "authentication_failed",
                    reason="landing_page_unavailable",
                    status=landing.status_code,
                    url=landing.url,
                )
                raise UnexpectedResponseError(
                    f"Landing page returned HTTP {landing.status_code} ({landing.url})"
                )
            cookies = http.cookies.get_dict()

        view_state = get_view_state(landing.content)
        if view_state is None:
            logger.error("authentication_failed", reason="view_state_missing")
            raise UnexpectedResponseError("No javax.faces.ViewState on the landing page")

        session = Session(
            username=username,
            cookies=cookies,
            view_state=view_state,
            form_id=get_sidebar_form_id(landing.content),
        )
        logger.info("authentication_succeeded", username=username, form_id=session.form_id)
        return session

    def logout(self, session: Session) -> None:
        """Invalidate `session` on the server.

        Raises:
            AuthNetworkError: Aurion could not be reached or timed out.
        """
        with self.http_for(session) as http:
            response = self._send(http, "GET", f"{self.base_url}{self.LOGOUT_PATH}")
        logger.info("session_closed", username=session.username, status=response.status_code)

    def _check_login_response(self, response: requests.Response) -> None:
        """Classify the login POST answer; Aurion redirects on success only."""
        status = response.status_code
        location = response.headers.get("Location", "")

        if response.is_redirect and location and not is_login_url(location):
            return

        if status in (200, 401, 403) or (response.is_redirect and is_login_url(location)):
            logger.warning("authentication_failed", reason="invalid_credentials", status=status)
            raise InvalidCredentialsError("Aurion rejected the username or password")

        logger.error("authentication_failed", reason="unexpected_status", status=status)
        raise UnexpectedResponseError(f"Unexpected HTTP {status} from the login endpoint")

    def _send(
        self, http: requests.Session, method: str, url: str, **kwargs
    ) -> requests.Response:
        # Login POST must not follow the redirect: its presence is the success signal
        allow_redirects = method != "POST"
        try:
            return http.request(
                method, url, timeout=self.timeout, allow_redirects=allow_redirects, **kwargs
            )
        except requests.Timeout as e:
            logger.warning("authentication_timeout", url=url, timeout=self.timeout)
            raise AuthNetworkError(f"{method} {url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.error("authentication_error", url=url, error=str(e), type=type(e).__name__)
            raise AuthNetworkError(f"{method} {url} failed: {e}") from e
