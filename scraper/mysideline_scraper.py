"""MySideline scraper driven by a headless browser and API interception."""
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from config import ScraperConfig
from processor.address import get_nested, normalise_address
from processor.errors import ItemValidationError
from processor.models import DEFAULT_EVENT_TITLE, CarnivalSource, RawEvent
from processor.title_parser import extract_date_from_title

logger = logging.getLogger(__name__)

IMAGE_WRAPPER_CLASS = 'el-image'
GENERIC_LOGO_PATTERNS = (
    'nrl.svg',
    'default.png',
    'placeholder',
    'logo-placeholder',
    'no-image',
    '/18285.png',
    'generic-logo.png',
)
CONTENT_WAIT_TIMEOUT_MS = 30000
POLL_INTERVAL_MS = 250


class ScrapeState(str, Enum):
    LAUNCHING = 'LAUNCHING'
    NAVIGATING = 'NAVIGATING'
    EXTRACTING_IMAGES = 'EXTRACTING_IMAGES'
    WAITING_FOR_API = 'WAITING_FOR_API'
    BUILDING = 'BUILDING'
    DONE = 'DONE'
    FAILED = 'FAILED'


class ApiResponseCapture:
    """One-shot holder for the first successful registration search response."""

    def __init__(self, api_url: str):
        self.api_url = api_url
        self.response = None

    def matches(self, url: str) -> bool:
        return url.split('?', 1)[0] == self.api_url

    def offer(self, response) -> None:
        if self.response is not None or not self.matches(response.url):
            return
        if not response.ok:
            logger.error(f"API request failed with status: {response.status}")
            return
        self.response = response
        logger.info("Intercepted registration search API response")

    @property
    def captured(self) -> bool:
        return self.response is not None

    def payload(self) -> Optional[Any]:
        if self.response is None:
            return None
        try:
            return self.response.json()
        except Exception as e:
            logger.error(f"Failed to parse intercepted API response as JSON: {e}")
            return None


def is_generic_logo(url: str) -> bool:
    lowered = url.lower()
    return any(pattern in lowered for pattern in GENERIC_LOGO_PATTERNS)


def extract_image_dictionary(html: str, page_url: str) -> Dict[str, str]:
    """
    Map each event image's alt text to its logo URL.

    Args:
        html: Rendered page HTML
        page_url: URL of the page, used to resolve relative URLs

    Returns:
        Dictionary of alt text to absolute URL; the last image wins on
        duplicate alt text
    """
    soup = BeautifulSoup(html, 'html.parser')
    parsed = urlparse(page_url)
    origin = f"{parsed.scheme}://{parsed.netloc}/"
    images = {}

    for img in soup.select(f'.{IMAGE_WRAPPER_CLASS} img[alt][data-url]'):
        alt = (img.get('alt') or '').strip()
        url = (img.get('data-url') or '').strip()
        if not alt or not url:
            continue
        if is_generic_logo(url):
            logger.debug(f"Skipping generic logo for '{alt}': {url}")
            continue
        images[alt] = urljoin(origin, url)

    logger.info(f"Found {len(images)} unique images with alt tags")
    return images


def is_relevant_masters_event(item: Any) -> bool:
    """
    Decide whether an API item is a Masters rugby league event.

    Touch and all-ages events are always excluded.
    """
    if not isinstance(item, Mapping) or not item.get('name'):
        return False

    def lowered(*keys: str) -> str:
        value = get_nested(item, *keys)
        return str(value).lower() if value else ''

    age_level = lowered('ageLvl')
    region = lowered('orgtree', 'region', 'name')
    association = lowered('association', 'name')
    competition = lowered('competition', 'name')
    club = lowered('club', 'name')

    if 'touch' in association or 'touch' in competition or 'all ages' in age_level:
        return False

    return (
        'masters' in age_level
        or 'nrl masters' in region
        or 'nrl masters' in association
        or 'masters' in competition
        or 'masters' in club
    )


class MySidelineScraper:
    """Scraper for MySideline Masters rugby league registrations."""

    def __init__(self, config: Optional[ScraperConfig] = None, playwright_factory=sync_playwright):
        """
        Initialize the scraper.

        Args:
            config: Scraper configuration
            playwright_factory: Callable returning a Playwright context manager
        """
        self.config = config or ScraperConfig()
        self.playwright_factory = playwright_factory
        self.state = None

    def _set_state(self, state: ScrapeState) -> None:
        self.state = state
        logger.debug(f"Scraper state: {state.value}")

    def scrape(self) -> List[RawEvent]:
        """
        Fetch Masters events from MySideline.

        Returns:
            List of RawEvent objects; empty on any site or network failure
        """
        if not self.config.scraping_enabled:
            logger.info("MySideline scraping is disabled via configuration")
            return []

        logger.info("Fetching MySideline Masters events via API interception")
        try:
            events = self._fetch_with_api_interception()
        except Exception as e:
            self._set_state(ScrapeState.FAILED)
            logger.error(f"Failed to fetch MySideline events: {e}", exc_info=True)
            return []

        logger.info(f"Found {len(events)} Masters events from MySideline")
        return events

    def _fetch_with_api_interception(self) -> List[RawEvent]:
        capture = ApiResponseCapture(self.config.api_url)
        timeout = self.config.request_timeout_ms

        with self.playwright_factory() as playwright:
            browser = context = page = None
            try:
                self._set_state(ScrapeState.LAUNCHING)
                launch_options = {'headless': self.config.headless, 'timeout': timeout}
                if self.config.browser_executable_path:
                    launch_options['executable_path'] = self.config.browser_executable_path
                browser = playwright.chromium.launch(**launch_options)
                context = browser.new_context()
                page = context.new_page()
                page.set_default_timeout(timeout)
                page.on('response', capture.offer)

                self._set_state(ScrapeState.NAVIGATING)
                logger.info(f"Navigating to MySideline search URL: {self.config.search_url}")
                page.goto(self.config.search_url, wait_until='domcontentloaded', timeout=timeout)

                self._set_state(ScrapeState.EXTRACTING_IMAGES)
                image_dictionary = self._extract_images(page)

                self._set_state(ScrapeState.WAITING_FOR_API)
                self._wait_for_api_response(page, capture)

                payload = capture.payload()
                if not isinstance(payload, Mapping) or not isinstance(payload.get('data'), list):
                    logger.warning("No JSON data captured from the registration search API")
                    self._set_state(ScrapeState.DONE)
                    return []

                self._set_state(ScrapeState.BUILDING)
                events = self.process_api_response(payload, image_dictionary)
                self._set_state(ScrapeState.DONE)
                return events

            finally:
                self._close(page, context, browser)

    def _extract_images(self, page) -> Dict[str, str]:
        try:
            page.wait_for_selector(
                f'.{IMAGE_WRAPPER_CLASS} img[alt]',
                timeout=min(CONTENT_WAIT_TIMEOUT_MS, self.config.request_timeout_ms),
            )
        except PlaywrightError as e:
            logger.warning(f"MySideline content wait failed: {e}")

        return extract_image_dictionary(page.content(), page.url)

    def _wait_for_api_response(self, page, capture: ApiResponseCapture) -> None:
        deadline = time.monotonic() + self.config.api_grace_period_ms / 1000
        while not capture.captured and time.monotonic() < deadline:
            page.wait_for_timeout(POLL_INTERVAL_MS)

    def _close(self, page, context, browser) -> None:
        for resource in (page, context, browser):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as e:
                logger.warning(f"Error closing browser resource: {e}")
        logger.debug("Browser cleanup completed")

    def process_api_response(
        self, payload: Mapping[str, Any], image_dictionary: Dict[str, str]
    ) -> List[RawEvent]:
        """
        Convert the intercepted API payload into RawEvents.

        Args:
            payload: Parsed JSON body with a ``data`` array
            image_dictionary: Alt text to logo URL mapping

        Returns:
            RawEvents for the relevant Masters items
        """
        items = payload.get('data') if isinstance(payload, Mapping) else None
        if not isinstance(items, list):
            logger.warning("Invalid API response structure")
            return []

        events = []
        for item in items:
            if not is_relevant_masters_event(item):
                continue

            try:
                event = self.convert_api_item(item)
            except ItemValidationError as e:
                logger.warning(f"Skipping API item: {e}")
                continue

            logo_url = image_dictionary.get(event.my_sideline_title)
            if logo_url:
                event.club_logo_url = logo_url.split('?', 1)[0]
            else:
                logger.debug(f"No logo found for '{event.my_sideline_title}'")

            events.append(event)

        logger.info(f"Processed {len(events)} events from API response")
        return events

    def convert_api_item(self, item: Mapping[str, Any]) -> RawEvent:
        """
        Build a RawEvent from a MySideline API item.

        Raises:
            ItemValidationError: If the item lacks ``_id`` or ``name``
        """
        if not isinstance(item, Mapping):
            raise ItemValidationError('Item is not an object')
        if not item.get('name'):
            raise ItemValidationError('Item missing required name property')
        if not item.get('_id'):
            raise ItemValidationError(f"Item '{item.get('name')}' missing required _id property")

        item_id = str(item['_id'])
        name = str(item['name'])
        address = normalise_address(item)
        clean_title, event_date = extract_date_from_title(name)

        return RawEvent(
            my_sideline_id=item_id,
            title=clean_title or name or DEFAULT_EVENT_TITLE,
            date=event_date,
            my_sideline_title=name,
            my_sideline_address=address.location_address,
            my_sideline_date=event_date,
            state=address.state,
            venue_name=address.venue_name,
            location_address=address.location_address,
            location_address_line1=address.location_address_line1,
            location_address_line2=address.location_address_line2,
            location_suburb=address.location_suburb,
            location_postcode=address.location_postcode,
            location_latitude=address.location_latitude,
            location_longitude=address.location_longitude,
            location_country=address.location_country,
            google_maps_url=address.google_maps_url,
            organiser_contact_name=get_nested(item, 'contact', 'name') or None,
            organiser_contact_phone=get_nested(item, 'contact', 'number') or None,
            organiser_contact_email=get_nested(item, 'contact', 'email') or None,
            registration_link=f"{self.config.event_url_prefix}{item_id}",
            social_media_website=get_nested(item, 'meta', 'website') or None,
            social_media_facebook=get_nested(item, 'meta', 'facebook') or None,
            schedule_details=get_nested(item, 'finderDetails', 'description') or None,
            source=CarnivalSource.MYSIDELINE,
            is_manually_entered=False,
            is_active=bool(item.get('regoOpen')),
        )
