"""Error hierarchy for Aurion authentication and scraping.

Errors are classified on two axes. The kind (AuthError vs FetchError) tells
the caller which operation failed; the TransientError / PermanentError base
tells it whether trying again can help. The library never retries itself.

Example usage with tenacity on the caller side:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def fetch(client, session):
        return client.get_schedule(session)
"""


class AurionError(Exception):
    """Base exception for all Aurion client errors."""

    pass


class TransientError(AurionError):
    """Temporary failure that may succeed on retry."""

    pass


class PermanentError(AurionError):
    """Failure that won't succeed on retry without caller action."""

    pass


class NetworkError(TransientError):
    """Host unreachable, connection reset or request timed out."""

    pass


# --- Login / logout ---


class AuthError(AurionError):
    """Base class for login and logout failures."""

    pass


class InvalidCredentialsError(AuthError, PermanentError):
    """Aurion rejected the username/password pair."""

    pass


class AuthNetworkError(AuthError, NetworkError):
    """The login endpoint could not be reached."""

    pass


class UnexpectedResponseError(AuthError, PermanentError):
    """Aurion answered the login handshake with something we can't use.

    Examples: 5xx status, no session cookie, no JSF view state on the
    landing page.
    """

    pass


# --- Authenticated fetches ---


class FetchError(AurionError):
    """Base class for failures of authenticated page fetches."""

    pass


class NotAuthenticatedError(FetchError, PermanentError):
    """No session was given, or the session can no longer be used."""

    pass


class SessionExpiredError(NotAuthenticatedError):
    """Session too old, or Aurion redirected an authenticated request to login."""

    pass


class FetchNetworkError(FetchError, NetworkError):
    """An authenticated request failed at the transport level."""

    pass


class FetchTimeoutError(FetchNetworkError):
    """An authenticated request exceeded the configured timeout."""

    pass


class ParseError(FetchError, PermanentError):
    """Aurion markup did not have the expected structure.

    Aurion is not versioned and its markup changes without notice, so the
    error carries which element or field was missing and a short snippet of
    the offending markup.
    """

    def __init__(
        self, message: str, *, context: str = "", snippet: str | None = None
    ) -> None:
        super().__init__(message)
        self.context = context
        self.snippet = snippet

    def __str__(self) -> str:
        message = super().__str__()
        if self.context:
            message = f"{message} [{self.context}]"
        return message
