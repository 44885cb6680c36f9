"""Data models for MySideline carnival synchronisation."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_EVENT_TITLE = 'Masters Rugby League Event'
DEFAULT_COUNTRY = 'Australia'


class CarnivalSource(str, Enum):
    MYSIDELINE = 'MySideline'
    MANUAL = 'Manual'


class SyncStatus(str, Enum):
    RUNNING = 'RUNNING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class TriggerSource(str, Enum):
    SCHEDULED = 'scheduled'
    MANUAL = 'manual'
    STARTUP = 'startup'


@dataclass
class RawEvent:
    """Canonical event record built from a MySideline API item."""
    my_sideline_id: str
    title: str
    date: Optional[date] = None
    my_sideline_title: Optional[str] = None
    my_sideline_address: Optional[str] = None
    my_sideline_date: Optional[date] = None
    state: Optional[str] = None
    venue_name: Optional[str] = None
    location_address: Optional[str] = None
    location_address_line1: Optional[str] = None
    location_address_line2: Optional[str] = None
    location_suburb: Optional[str] = None
    location_postcode: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    location_country: Optional[str] = DEFAULT_COUNTRY
    google_maps_url: Optional[str] = None
    organiser_contact_name: Optional[str] = None
    organiser_contact_email: Optional[str] = None
    organiser_contact_phone: Optional[str] = None
    registration_link: Optional[str] = None
    social_media_facebook: Optional[str] = None
    social_media_website: Optional[str] = None
    schedule_details: Optional[str] = None
    club_logo_url: Optional[str] = None
    source: CarnivalSource = CarnivalSource.MYSIDELINE
    is_manually_entered: bool = False
    is_active: bool = False


@dataclass
class Carnival:
    """Stored carnival row."""
    id: str
    title: str
    date: Optional[date] = None
    source: CarnivalSource = CarnivalSource.MYSIDELINE
    is_manually_entered: bool = False
    my_sideline_id: Optional[str] = None
    my_sideline_title: Optional[str] = None
    my_sideline_address: Optional[str] = None
    my_sideline_date: Optional[date] = None
    state: Optional[str] = None
    venue_name: Optional[str] = None
    location_address: Optional[str] = None
    location_address_line1: Optional[str] = None
    location_address_line2: Optional[str] = None
    location_suburb: Optional[str] = None
    location_postcode: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    location_country: Optional[str] = DEFAULT_COUNTRY
    google_maps_url: Optional[str] = None
    organiser_contact_name: Optional[str] = None
    organiser_contact_email: Optional[str] = None
    organiser_contact_phone: Optional[str] = None
    registration_link: Optional[str] = None
    social_media_facebook: Optional[str] = None
    social_media_website: Optional[str] = None
    schedule_details: Optional[str] = None
    club_logo_url: Optional[str] = None
    is_active: bool = True
    is_registration_open: bool = False
    last_mysideline_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class SyncLogRecord:
    """One sync attempt."""
    id: str
    job_kind: str
    started_at: datetime
    status: SyncStatus = SyncStatus.RUNNING
    trigger_source: str = TriggerSource.SCHEDULED.value
    environment: str = 'development'
    completed_at: Optional[datetime] = None
    events_processed: int = 0
    events_created: int = 0
    events_updated: int = 0
    error_message: Optional[str] = None


@dataclass
class ReconcileItem:
    """Outcome of reconciling a single incoming event."""
    event: RawEvent
    action: str
    carnival: Optional[Carnival] = None
    logo_url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ReconcileResult:
    """Folded outcome of one reconciliation pass."""
    items: List[ReconcileItem] = field(default_factory=list)

    @property
    def processed(self) -> List[Carnival]:
        return [
            item.carnival for item in self.items
            if item.action in ('created', 'updated') and item.carnival
        ]

    @property
    def created(self) -> int:
        return sum(1 for item in self.items if item.action == 'created')

    @property
    def updated(self) -> int:
        return sum(1 for item in self.items if item.action == 'updated')

    @property
    def skipped(self) -> int:
        return sum(1 for item in self.items if item.action == 'skipped')

    @property
    def errors(self) -> List[str]:
        return [item.error for item in self.items if item.action == 'failed']


@dataclass
class DeactivationResult:
    """Result of the past-carnival deactivation pass."""
    success: bool
    deactivated_count: int = 0
    error: Optional[str] = None


@dataclass
class LogoRequest:
    """A single logo download request."""
    logo_url: str
    entity_type: str
    entity_id: str
    image_type: str = 'logo'


@dataclass
class DownloadResult:
    """Result of a logo download."""
    success: bool
    original_url: Any = None
    public_url: Optional[str] = None
    local_path: Optional[str] = None
    filename: Optional[str] = None
    file_size: int = 0
    content_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    error: Optional[str] = None
    request_index: Optional[int] = None
    request: Optional[LogoRequest] = None


@dataclass
class SyncResult:
    """Result of sync operation."""
    success: bool
    events_processed: int = 0
    events_created: int = 0
    events_updated: int = 0
    past_carnivals_deactivated: int = 0
    logos_downloaded: int = 0
    logos_failed: int = 0
    skipped: bool = False
    message: Optional[str] = None
    error: Optional[str] = None
    sync_log_id: Optional[str] = None
    last_sync: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'events_processed': self.events_processed,
            'events_created': self.events_created,
            'events_updated': self.events_updated,
            'past_carnivals_deactivated': self.past_carnivals_deactivated,
            'logos_downloaded': self.logos_downloaded,
            'logos_failed': self.logos_failed,
            'skipped': self.skipped,
            'message': self.message,
            'error': self.error,
            'sync_log_id': self.sync_log_id,
            'last_sync': self.last_sync.isoformat() if self.last_sync else None,
        }
