"""Reconciliation of scraped MySideline events against stored carnivals."""
import dataclasses
import logging
from datetime import datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional

from processor.errors import DuplicateExternalIdError
from processor.models import (
    DEFAULT_COUNTRY,
    Carnival,
    CarnivalSource,
    DeactivationResult,
    RawEvent,
    ReconcileItem,
    ReconcileResult,
)

logger = logging.getLogger(__name__)

UPLOADS_PREFIX = '/uploads/'


def is_empty(value: Any) -> bool:
    """True for None and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_remote_url(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.lower().startswith('http')


class CarnivalReconciler:
    """Converges the carnival store to a list of scraped events."""

    # Only filled in when empty on the stored row
    MERGE_FIELDS = (
        'location_address',
        'location_address_line1',
        'location_address_line2',
        'location_suburb',
        'location_postcode',
        'location_latitude',
        'location_longitude',
        'location_country',
        'organiser_contact_email',
        'organiser_contact_name',
        'organiser_contact_phone',
        'registration_link',
        'schedule_details',
        'social_media_facebook',
        'social_media_website',
        'state',
        'venue_name',
    )
    REGISTRATION_OPEN_LEAD = timedelta(days=7)

    def __init__(self, carnival_repository, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the reconciler.

        Args:
            carnival_repository: Store of Carnival rows
            clock: Returns the current local time
        """
        self.repository = carnival_repository
        self.clock = clock

    def find_existing(self, event: RawEvent) -> Optional[Carnival]:
        """
        Resolve the stored carnival an incoming event refers to.

        Strategies are tried in order: MySideline ID, the immutable
        MySideline title/date/address triple, then date and title.

        Args:
            event: Cleaned incoming event

        Returns:
            The matching Carnival or None

        Raises:
            DuplicateExternalIdError: If several rows share the MySideline ID
        """
        if event.my_sideline_id:
            matches = self.repository.find_by_external_id(event.my_sideline_id)
            if len(matches) > 1:
                raise DuplicateExternalIdError(event.my_sideline_id, len(matches))
            if matches:
                logger.debug(f"Matched '{event.title}' by mySidelineId {event.my_sideline_id}")
                return matches[0]

        if event.my_sideline_title:
            match = self.repository.find_by_immutable_keys(
                event.my_sideline_title,
                event.my_sideline_date,
                event.my_sideline_address,
            )
            if match:
                logger.debug(f"Matched '{event.my_sideline_title}' by immutable fields")
                return match

        if event.date and event.title:
            match = self.repository.find_by_date_and_title(event.date, event.title)
            if match:
                logger.debug(f"Matched '{event.title}' by date and title")
                return match

        return None

    def reconcile(self, events: List[RawEvent]) -> ReconcileResult:
        """
        Create or merge every incoming event, one at a time.

        Args:
            events: Cleaned incoming events

        Returns:
            ReconcileResult with one item per event
        """
        logger.info(f"Reconciling {len(events)} MySideline events")
        sync_time = self.clock()
        result = ReconcileResult()

        for event in events:
            try:
                item = self._reconcile_event(event, sync_time)
            except Exception as e:
                logger.error(f"Failed to process event '{event.title}': {e}")
                item = ReconcileItem(event=event, action='failed', error=str(e))
            result.items.append(item)

        logger.info(
            f"Reconciled events: {result.created} created, {result.updated} updated, "
            f"{result.skipped} skipped, {len(result.errors)} failed"
        )
        return result

    def _reconcile_event(self, event: RawEvent, sync_time: datetime) -> ReconcileItem:
        existing = self.find_existing(event)

        if existing is None:
            return self._create(event, sync_time)

        if self._should_skip(existing, event, sync_time):
            logger.info(
                f"Skipping past or inactive event: '{event.my_sideline_title}' on {event.date}"
            )
            return ReconcileItem(event=event, action='skipped', carnival=existing)

        patch = self.build_update_patch(existing, event, sync_time)
        updated = self.repository.update(existing.id, patch)

        if len(patch) > 1:
            logger.info(f"Updated {len(patch) - 1} empty fields for event: '{event.title}'")

        logo_url = None
        if is_remote_url(updated.club_logo_url):
            logo_url = updated.club_logo_url
        elif is_empty(updated.club_logo_url) and is_remote_url(event.club_logo_url):
            logo_url = event.club_logo_url

        return ReconcileItem(
            event=event, action='updated', carnival=updated, logo_url=logo_url
        )

    def _should_skip(self, existing: Carnival, event: RawEvent, sync_time: datetime) -> bool:
        if not existing.is_active:
            return True
        return bool(event.date and event.date < sync_time.date())

    def build_update_patch(
        self, existing: Carnival, event: RawEvent, sync_time: datetime
    ) -> Dict[str, Any]:
        """
        Compute the empty-field merge patch for a matched carnival.

        Args:
            existing: Stored carnival
            event: Incoming event
            sync_time: Timestamp of the current sync

        Returns:
            Field name to new value; always contains last_mysideline_sync
        """
        patch: Dict[str, Any] = {}

        for field_name in self.MERGE_FIELDS:
            incoming = getattr(event, field_name)
            if is_empty(getattr(existing, field_name)) and not is_empty(incoming):
                patch[field_name] = incoming

        # Remote logos are localised by the caller, only local paths are merged
        if (
            is_empty(existing.club_logo_url)
            and isinstance(event.club_logo_url, str)
            and event.club_logo_url.startswith(UPLOADS_PREFIX)
        ):
            patch['club_logo_url'] = event.club_logo_url

        if not existing.my_sideline_id and event.my_sideline_id:
            patch['my_sideline_id'] = event.my_sideline_id
            if event.registration_link:
                patch['registration_link'] = event.registration_link

        patch['last_mysideline_sync'] = sync_time
        return patch

    def _create(self, event: RawEvent, sync_time: datetime) -> ReconcileItem:
        fields = {f.name: getattr(event, f.name) for f in dataclasses.fields(RawEvent)}
        carnival = Carnival(id='', **fields)
        carnival.source = CarnivalSource.MYSIDELINE
        carnival.is_manually_entered = False
        carnival.location_country = event.location_country or DEFAULT_COUNTRY
        carnival.last_mysideline_sync = sync_time
        carnival.is_registration_open = self._opens_registration(event, sync_time)
        # Deactivation ran before ingestion, so past-dated rows start inactive
        if event.date and event.date < sync_time.date():
            carnival.is_active = False

        created = self.repository.insert(carnival)
        logger.info(f"Created new MySideline event: '{created.title}'")

        logo_url = created.club_logo_url if is_remote_url(created.club_logo_url) else None
        return ReconcileItem(
            event=event, action='created', carnival=created, logo_url=logo_url
        )

    def _opens_registration(self, event: RawEvent, now: datetime) -> bool:
        if not event.date:
            return False
        return datetime.combine(event.date, time.min) > now + self.REGISTRATION_OPEN_LEAD

    def deactivate_past_carnivals(self) -> DeactivationResult:
        """
        Mark every active carnival dated before today as inactive.

        Applies to all rows, manually entered ones included.

        Returns:
            DeactivationResult with the number of rows changed
        """
        today = self.clock().date()
        logger.info(f"Checking for carnivals dated before {today.isoformat()} to deactivate")

        try:
            count = self.repository.deactivate_past_before(today)
        except Exception as e:
            logger.error(f"Error deactivating past carnivals: {e}")
            return DeactivationResult(success=False, error=str(e))

        if count:
            logger.info(f"Deactivated {count} past carnivals")
        else:
            logger.info("No past carnivals found to deactivate")
        return DeactivationResult(success=True, deactivated_count=count)
