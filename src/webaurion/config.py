"""Client configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class AurionConfig(BaseSettings):
    """Aurion client configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Aurion portal
    aurion_url: str = Field(
        default="https://web.isen-ouest.fr/webAurion",
        description="Aurion service base URL (without trailing slash)",
    )
    aurion_user: str = Field(
        default="",
        description="Aurion username",
    )
    aurion_pass: str = Field(
        default="",
        description="Aurion password",
    )

    # Sidebar menu ids (differ between schools, found by inspecting the sidebar)
    aurion_schooling_id: str = Field(
        default="submenu_291906",
        description="Submenu holding the personal planning entry",
    )
    aurion_user_planning_id: str = Field(
        default="1_3",
        description="Menu entry of the user's own planning",
    )
    aurion_groups_planning_id: str = Field(
        default="submenu_299102",
        description="Submenu holding the group plannings",
    )

    # HTTP
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for every HTTP request",
    )
    user_agent: str = Field(
        default="webaurion/0.1 (+python-requests)",
        description="User-Agent header sent to Aurion",
    )

    # Session settings
    max_session_age_hours: int = Field(
        default=24,
        description="Maximum age of a session before it is refused without a request",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: AurionConfig | None = None


def get_config() -> AurionConfig:
    """Get the client configuration singleton.

    Returns:
        AurionConfig: Client configuration instance
    """
    global _config
    if _config is None:
        _config = AurionConfig()
    return _config
