"""Unit tests for environment configuration."""
from config import DEFAULT_SEARCH_URL, SyncConfig


class TestSyncConfig:
    """Test cases for SyncConfig.from_env."""

    def test_defaults(self):
        config = SyncConfig.from_env({})

        assert config.sync_enabled is False
        assert config.environment == 'development'
        assert config.sync_cron == '0 3 * * *'
        assert config.sync_interval_hours == 24
        assert config.startup_delay_seconds == 2
        assert config.scraper.scraping_enabled is True
        assert config.scraper.headless is False
        assert config.scraper.request_timeout_ms == 60000
        assert config.scraper.search_url == DEFAULT_SEARCH_URL
        assert config.logo.uploads_root == 'uploads'
        assert config.logo.max_file_size_bytes == 5 * 1024 * 1024

    def test_overrides(self):
        config = SyncConfig.from_env({
            'MYSIDELINE_SYNC_ENABLED': 'true',
            'MYSIDELINE_ENABLE_SCRAPING': 'false',
            'NODE_ENV': 'production',
            'MYSIDELINE_REQUEST_TIMEOUT': '30000',
            'MYSIDELINE_URL': 'https://mysideline.example/search',
            'MYSIDELINE_EVENT_URL': 'https://mysideline.example/e/',
            'PLAYWRIGHT_CHROMIUM_EXECUTABLE_PATH': '/usr/bin/chromium',
            'UPLOADS_ROOT': '/srv/uploads',
            'CARNIVAL_TABLE_NAME': 'prod-carnivals',
            'SYNC_LOG_TABLE_NAME': 'prod-sync-logs',
            'MYSIDELINE_SYNC_CRON': '15 4 * * *',
            'MYSIDELINE_SYNC_INTERVAL_HOURS': '12',
            'MYSIDELINE_STARTUP_DELAY_SECONDS': '10',
            'LOG_LEVEL': 'DEBUG',
        })

        assert config.sync_enabled is True
        assert config.scraper.scraping_enabled is False
        assert config.scraper.headless is True
        assert config.scraper.request_timeout_ms == 30000
        assert config.scraper.search_url == 'https://mysideline.example/search'
        assert config.scraper.event_url_prefix == 'https://mysideline.example/e/'
        assert config.scraper.browser_executable_path == '/usr/bin/chromium'
        assert config.logo.uploads_root == '/srv/uploads'
        assert config.carnival_table_name == 'prod-carnivals'
        assert config.sync_log_table_name == 'prod-sync-logs'
        assert config.sync_cron == '15 4 * * *'
        assert config.sync_interval_hours == 12
        assert config.startup_delay_seconds == 10
        assert config.log_level == 'DEBUG'

    def test_sync_enabled_requires_exact_true(self):
        assert SyncConfig.from_env({'MYSIDELINE_SYNC_ENABLED': 'yes'}).sync_enabled is False

    def test_invalid_integers_fall_back(self):
        config = SyncConfig.from_env({
            'MYSIDELINE_REQUEST_TIMEOUT': 'soon',
            'MYSIDELINE_STARTUP_DELAY_SECONDS': '0',
        })

        assert config.scraper.request_timeout_ms == 60000
        assert config.startup_delay_seconds == 2
