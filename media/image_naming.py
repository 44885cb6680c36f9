"""Deterministic naming of stored images."""
import hashlib
import posixpath
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict

ENTITY_TYPES = ('club', 'carnival', 'sponsor', 'user', 'system')
IMAGE_TYPES = ('logo', 'promo', 'gallery', 'draw', 'avatar', 'banner', 'thumb', 'social')

LOGO = 'logo'
SYSTEM_UPLOADER = 'system'


@dataclass
class ImageName:
    filename: str
    relative_path: str
    full_path: str
    metadata: Dict[str, Any]


def name_prefix(entity_type: str, entity_id, image_type: str, upload_date: date) -> str:
    """Filename prefix shared by every image of an entity, type and day."""
    return '-'.join([
        entity_type,
        str(entity_id).zfill(6),
        image_type,
        upload_date.strftime('%Y%m%d'),
    ])


def build_image_name(
    entity_type: str,
    entity_id,
    image_type: str,
    original_name: str,
    upload_date: date,
    sequence: int = 1,
    uploader: str = SYSTEM_UPLOADER,
    custom_suffix: str = '',
) -> ImageName:
    """
    Map an image's identity to its structured file name and path.

    Format: {entityType}-{entityId}-{imageType}-{YYYYMMDD}-{uploader}-{seq}[-{suffix}].{ext}
    stored under {entityType}/{entityId}/{imageType}/.

    Args:
        entity_type: One of ENTITY_TYPES
        entity_id: Id of the owning entity
        image_type: One of IMAGE_TYPES
        original_name: Original file name; supplies the extension
        upload_date: Day the image is stored
        sequence: 1-based sequence among same-day images of the entity
        uploader: Uploader identifier
        custom_suffix: Optional trailing marker, e.g. "mysideline"

    Returns:
        ImageName

    Raises:
        ValueError: If any naming input is invalid
    """
    if entity_type not in ENTITY_TYPES:
        raise ValueError(f"Invalid entity type: {entity_type}")
    if image_type not in IMAGE_TYPES:
        raise ValueError(f"Invalid image type: {image_type}")
    if entity_id is None or str(entity_id) == '':
        raise ValueError("Entity id is required")
    if sequence < 1:
        raise ValueError(f"Sequence must be positive: {sequence}")

    extension = posixpath.splitext(original_name or '')[1].lower()
    if not extension:
        raise ValueError(f"Original name has no extension: {original_name!r}")

    components = [
        name_prefix(entity_type, entity_id, image_type, upload_date),
        str(uploader),
        f"{sequence:03d}",
    ]
    if custom_suffix:
        components.append(custom_suffix)

    filename = '-'.join(components) + extension
    relative_path = posixpath.join(entity_type, str(entity_id), image_type)

    integrity_hash = hashlib.sha256(
        '-'.join(components).encode('utf-8')
    ).hexdigest()[:8]

    return ImageName(
        filename=filename,
        relative_path=relative_path,
        full_path=posixpath.join(relative_path, filename),
        metadata={
            'filename': filename,
            'entity_type': entity_type,
            'entity_id': str(entity_id),
            'image_type': image_type,
            'uploader': str(uploader),
            'upload_date': upload_date.strftime('%Y%m%d'),
            'sequence': sequence,
            'integrity_hash': integrity_hash,
            'original_name': original_name,
            'extension': extension,
            'custom_suffix': custom_suffix or None,
        },
    )
