"""Normalisation of MySideline venue and contact addresses."""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote

from processor.models import DEFAULT_COUNTRY

logger = logging.getLogger(__name__)

GOOGLE_MAPS_SEARCH_URL = 'https://www.google.com/maps/search/?api=1&query={query}'

# Characters left unescaped by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class NormalisedAddress:
    location_address: Optional[str] = None
    location_address_line1: Optional[str] = None
    location_address_line2: Optional[str] = None
    location_suburb: Optional[str] = None
    location_postcode: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    location_country: str = DEFAULT_COUNTRY
    state: Optional[str] = None
    venue_name: Optional[str] = None
    google_maps_url: Optional[str] = None


def get_nested(data: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    current = data
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coordinate(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric coordinate: {value!r}")
        return None


def build_google_maps_url(lat: Any, lng: Any, formatted: Optional[str]) -> Optional[str]:
    """
    Build a Google Maps search link.

    Coordinates win over the formatted address when both are present.
    """
    if _text(lat) and _text(lng):
        return GOOGLE_MAPS_SEARCH_URL.format(query=f"{_text(lat)},{_text(lng)}")
    if formatted:
        return GOOGLE_MAPS_SEARCH_URL.format(
            query=quote(formatted, safe=_URI_COMPONENT_SAFE)
        )
    return None


def normalise_address(item: Mapping[str, Any]) -> NormalisedAddress:
    """
    Convert the venue (or fallback contact) address of an API item.

    Args:
        item: MySideline API item

    Returns:
        NormalisedAddress with structured fields and a map link
    """
    result = NormalisedAddress(
        venue_name=_text(get_nested(item, 'venue', 'name'))
        or _text(get_nested(item, 'orgtree', 'venue', 'name'))
    )

    address = get_nested(item, 'venue', 'address')
    if not isinstance(address, Mapping) or not address:
        address = get_nested(item, 'contact', 'address')
    if not isinstance(address, Mapping) or not address:
        return result

    formatted = _text(address.get('formatted'))
    state = _text(address.get('state'))

    result.location_address = formatted
    result.location_address_line1 = _text(address.get('addressLine1'))
    result.location_address_line2 = _text(address.get('addressLine2'))
    result.location_suburb = _text(address.get('suburb'))
    result.location_postcode = _text(address.get('postcode'))
    result.location_latitude = _coordinate(address.get('lat'))
    result.location_longitude = _coordinate(address.get('lng'))
    result.location_country = _text(address.get('country')) or DEFAULT_COUNTRY
    result.state = state.upper() if state else None
    result.google_maps_url = build_google_maps_url(
        address.get('lat'), address.get('lng'), formatted
    )

    return result
