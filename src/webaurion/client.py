"""Public entry point of the Aurion client."""

from webaurion.config import AurionConfig, get_config
from webaurion.logging import get_logger
from webaurion.models import ClassGroup, DateRange, MenuNode, Schedule, Session
from webaurion.pages.menu import MenuPage
from webaurion.pages.planning_choice import ChoixPlanningPage
from webaurion.pages.schedule import SchedulePage
from webaurion.session import SessionManager

log = get_logger(__name__)


class AurionClient:
    """Client for one Aurion portal.

    The client holds configuration only. Authentication state lives in the
    Session returned by login(), which the caller passes to every other call.

    Example:
        >>> client = AurionClient("https://web.isen-ouest.fr/webAurion")
        >>> session = client.login("jdupont", "secret")
        >>> for event in client.get_schedule(session):
        ...     print(event.start, event.title, event.location)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        config: AurionConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Aurion service URL. Defaults to config.aurion_url.
            timeout: Per-request timeout in seconds. Defaults to config.request_timeout.
            config: Settings to use instead of the environment-loaded singleton.
        """
        self.config = config or get_config()
        self.base_url = (base_url or self.config.aurion_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self.config.request_timeout
        self.sessions = SessionManager(
            self.base_url,
            timeout=self.timeout,
            max_session_age_hours=self.config.max_session_age_hours,
            user_agent=self.config.user_agent,
        )

    def login(self, username: str, password: str) -> Session:
        """Authenticate and return a new Session. See SessionManager.login."""
        return self.sessions.login(username, password)

    def logout(self, session: Session) -> None:
        """End `session` on the server. Later fetches with it raise SessionExpiredError."""
        self.sessions.logout(session)

    def get_schedule(
        self, session: Session | None, date_range: DateRange | None = None
    ) -> Schedule:
        """Fetch the logged-in user's timetable.

        Args:
            session: Session from login().
            date_range: Window to fetch. Defaults to the current school year.

        Returns:
            Schedule with events in the order Aurion lists them.

        Raises:
            NotAuthenticatedError: No session, or it expired (SessionExpiredError).
            FetchNetworkError: Transport failure (FetchTimeoutError on timeout).
            ParseError: Aurion markup did not have the expected structure.
        """
        session = self.sessions.require_session(session)
        date_range = date_range or DateRange.school_year()

        with self.sessions.http_for(session) as http:
            menu = MenuPage(http, self.base_url, timeout=self.timeout)
            # The planning entry only exists once its parent submenu is loaded
            if self.config.aurion_schooling_id:
                menu.load_submenu(session, self.config.aurion_schooling_id)
            menu.select(session, self.config.aurion_user_planning_id)

            events = SchedulePage(http, self.base_url, timeout=self.timeout).extract(date_range)

        log.info("schedule_fetched", username=session.username, events=len(events))
        return Schedule(date_range=date_range, events=events)

    def get_menu_children(
        self, session: Session | None, menu_id: str | None = None
    ) -> list[MenuNode]:
        """Load a sidebar submenu and return its direct children.

        Args:
            session: Session from login().
            menu_id: Submenu to load. Defaults to config.aurion_groups_planning_id.

        Raises:
            NotAuthenticatedError: No session, or it expired.
            ParseError: The sidebar markup lacks `menu_id`.
        """
        session = self.sessions.require_session(session)
        menu_id = menu_id or self.config.aurion_groups_planning_id
        with self.sessions.http_for(session) as http:
            return MenuPage(http, self.base_url, timeout=self.timeout).load_submenu(session, menu_id)

    def get_class_groups(self, session: Session | None, menu_id: str) -> list[ClassGroup]:
        """List the class groups behind a group-planning leaf menu entry.

        Args:
            session: Session from login().
            menu_id: Leaf id, as returned by get_menu_children().

        Raises:
            NotAuthenticatedError: No session, or it expired.
            ParseError: The groups table is missing.
        """
        session = self.sessions.require_session(session)
        with self.sessions.http_for(session) as http:
            MenuPage(http, self.base_url, timeout=self.timeout).select(session, menu_id)
            return ChoixPlanningPage(http, self.base_url, timeout=self.timeout).extract_groups()
