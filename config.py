"""Configuration for the MySideline sync, read from environment variables."""
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = (
    'https://profile.mysideline.com.au/register/clubsearch/'
    '?criteria=Masters&source=rugby-league'
)
DEFAULT_EVENT_URL_PREFIX = (
    'https://profile.mysideline.com.au/register/clubsearch/'
    '?source=rugby-league&entityType=team&isEntityIdSearch=true&entity=true&criteria='
)
REGISTRATION_SEARCH_API_URL = (
    'https://api.mysideline.xyz/nrl/api/v1/portal-public/registration/search'
)


def _int_setting(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {raw!r}; using {default}")
        return default


@dataclass
class ScraperConfig:
    scraping_enabled: bool = True
    headless: bool = True
    request_timeout_ms: int = 60000
    search_url: str = DEFAULT_SEARCH_URL
    event_url_prefix: str = DEFAULT_EVENT_URL_PREFIX
    api_url: str = REGISTRATION_SEARCH_API_URL
    browser_executable_path: Optional[str] = None
    api_grace_period_ms: int = 10000


@dataclass
class LogoConfig:
    max_retries: int = 3
    timeout_ms: int = 10000
    max_file_size_bytes: int = 5 * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg')
    allowed_mime_prefixes: Tuple[str, ...] = (
        'image/jpeg', 'image/png', 'image/gif', 'image/webp', 'image/svg+xml',
    )
    uploads_root: str = 'uploads'
    bulk_delay_seconds: float = 0.5
    user_agent: str = 'Old-Man-Footy-Platform/1.0 (Logo Sync Service)'


@dataclass
class SyncConfig:
    sync_enabled: bool = False
    environment: str = 'development'
    carnival_table_name: str = 'carnivals'
    sync_log_table_name: str = 'sync-logs'
    sync_cron: str = '0 3 * * *'
    sync_interval_hours: int = 24
    startup_delay_seconds: int = 2
    log_level: str = 'INFO'
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    logo: LogoConfig = field(default_factory=LogoConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'SyncConfig':
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            SyncConfig
        """
        env = os.environ if environ is None else environ
        environment = env.get('NODE_ENV') or 'development'

        scraper = ScraperConfig(
            scraping_enabled=env.get('MYSIDELINE_ENABLE_SCRAPING') != 'false',
            headless=environment != 'development',
            request_timeout_ms=_int_setting(env, 'MYSIDELINE_REQUEST_TIMEOUT', 60000),
            search_url=env.get('MYSIDELINE_URL') or DEFAULT_SEARCH_URL,
            event_url_prefix=env.get('MYSIDELINE_EVENT_URL') or DEFAULT_EVENT_URL_PREFIX,
            browser_executable_path=env.get('PLAYWRIGHT_CHROMIUM_EXECUTABLE_PATH') or None,
        )
        logo = LogoConfig(uploads_root=env.get('UPLOADS_ROOT') or 'uploads')

        return cls(
            sync_enabled=env.get('MYSIDELINE_SYNC_ENABLED') == 'true',
            environment=environment,
            carnival_table_name=env.get('CARNIVAL_TABLE_NAME') or 'carnivals',
            sync_log_table_name=env.get('SYNC_LOG_TABLE_NAME') or 'sync-logs',
            sync_cron=env.get('MYSIDELINE_SYNC_CRON') or '0 3 * * *',
            sync_interval_hours=_int_setting(env, 'MYSIDELINE_SYNC_INTERVAL_HOURS', 24),
            startup_delay_seconds=max(
                2, _int_setting(env, 'MYSIDELINE_STARTUP_DELAY_SECONDS', 2)
            ),
            log_level=env.get('LOG_LEVEL') or 'INFO',
            scraper=scraper,
            logo=logo,
        )
