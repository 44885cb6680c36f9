"""Field-level cleaning of scraped MySideline events."""
import dataclasses
import logging
import re
from typing import List

from processor.models import DEFAULT_EVENT_TITLE, RawEvent

logger = logging.getLogger(__name__)


class EventValidator:
    """Sanitises scraped events before reconciliation."""

    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    TRIMMED_FIELDS = ('title', 'location_address', 'organiser_contact_name')

    def validate_events(self, raw_events: List[RawEvent]) -> List[RawEvent]:
        """
        Clean a batch of scraped events.

        Args:
            raw_events: Events produced by the scraper

        Returns:
            Cleaned events; any event that raises while cleaning is dropped
        """
        cleaned_events = []

        for event in raw_events:
            try:
                cleaned_events.append(self.clean(event))
            except Exception as e:
                logger.warning(
                    f"Failed to validate event '{getattr(event, 'title', None)}': {e}"
                )
                continue

        logger.info(
            f"{len(cleaned_events)}/{len(raw_events)} events passed validation"
        )
        return cleaned_events

    def clean(self, event: RawEvent) -> RawEvent:
        """
        Apply the cleaning rules to a single event.

        Args:
            event: Scraped event

        Returns:
            A cleaned copy of the event
        """
        cleaned = dataclasses.replace(event)

        for field_name in self.TRIMMED_FIELDS:
            value = getattr(cleaned, field_name)
            if isinstance(value, str):
                setattr(cleaned, field_name, value.strip() or None)

        if not cleaned.title:
            logger.warning("No title provided, using default")
            cleaned.title = DEFAULT_EVENT_TITLE

        cleaned.organiser_contact_email = self._clean_email(
            cleaned.organiser_contact_email
        )
        return cleaned

    def _clean_email(self, email):
        if not email:
            return None

        email = str(email).strip()
        if not self.EMAIL_PATTERN.match(email):
            logger.warning(f"Invalid email format: {email}")
            return None

        return email.lower()
