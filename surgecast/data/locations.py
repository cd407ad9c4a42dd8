"""
SurgeCast Locations

City name normalisation, validation and the known-city registry
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from surgecast.core.exceptions import InvalidLocationError

CITY_NAME_PATTERN = re.compile(r"^[A-Za-z\s\-'.]{2,}$")


@dataclass(frozen=True)
class Location:
    """A validated location; `name` is the storage key"""

    name: str
    state: str = ""
    country: str = "India"
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


KNOWN_CITIES: Dict[str, Location] = {
    "Delhi": Location("Delhi", "Delhi", "India", 28.6139, 77.2090),
    "Mumbai": Location("Mumbai", "Maharashtra", "India", 19.0760, 72.8777),
    "Bangalore": Location("Bangalore", "Karnataka", "India", 12.9716, 77.5946),
    "Kolkata": Location("Kolkata", "West Bengal", "India", 22.5726, 88.3639),
    "Chennai": Location("Chennai", "Tamil Nadu", "India", 13.0827, 80.2707),
    "Hyderabad": Location("Hyderabad", "Telangana", "India", 17.3850, 78.4867),
    "Pune": Location("Pune", "Maharashtra", "India", 18.5204, 73.8567),
    "Ahmedabad": Location("Ahmedabad", "Gujarat", "India", 23.0225, 72.5714),
    "Jaipur": Location("Jaipur", "Rajasthan", "India", 26.9124, 75.7873),
    "Lucknow": Location("Lucknow", "Uttar Pradesh", "India", 26.8467, 80.9462),
}


def normalize_location(text: Optional[str]) -> Optional[str]:
    """
    Normalise a free-form location string to a city name

    "  new delhi, DL, India " -> "New Delhi"
    """
    if not text or not isinstance(text, str):
        return None

    city = text.split(",", 1)[0]
    words = city.split()
    if not words:
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def is_valid_city_name(name: Optional[str]) -> bool:
    """Letters, spaces and common punctuation, at least two characters"""
    if not name or not isinstance(name, str):
        return False
    return bool(CITY_NAME_PATTERN.match(name.strip()))


def resolve_location(
    text: Optional[str],
    allowed: Iterable[str] = (),
    default_country: str = "India",
) -> Location:
    """
    Validate a location string and attach registry details

    Args:
        text: user-supplied location
        allowed: optional allow-list of city names; empty allows any
        default_country: country for cities outside the registry

    Raises:
        InvalidLocationError: malformed or not allowed
    """
    name = normalize_location(text)
    if not is_valid_city_name(name):
        raise InvalidLocationError(f"Invalid location name: {text!r}")

    allowed_names = {normalize_location(a) for a in allowed}
    if allowed_names and name not in allowed_names:
        raise InvalidLocationError(f"Unsupported location: {name}")

    known = KNOWN_CITIES.get(name)
    if known is not None:
        return known
    return Location(name=name, country=default_country)
