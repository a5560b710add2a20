from dataclasses import dataclass, field
from typing import Any, TypedDict


class CoordinatesDict(TypedDict):
    lat: float
    lng: float


class LocationDict(TypedDict):
    address: str | None
    city: str | None
    country: str | None
    coordinates: CoordinatesDict | None


class EventDict(TypedDict):
    """JSON representation of an event, as stored in the cache file."""

    id: str
    title: str
    description: str
    category: str
    location: LocationDict
    startDate: str | None
    endDate: str | None
    durationMinutes: int | None
    imageUrl: str | None
    websiteUrl: str | None
    price: float
    isOnline: bool
    isExternal: bool
    createdAt: str
    creatorId: str | None
    tags: list[str]


class CacheRecordDict(TypedDict):
    events: list[EventDict]
    lastUpdated: str
    count: int


@dataclass
class Coordinates:
    lat: float
    lng: float


@dataclass
class Location:
    address: str | None = None
    city: str | None = None
    country: str | None = None
    coordinates: Coordinates | None = None

    def to_dict(self) -> LocationDict:
        return LocationDict(
            address=self.address,
            city=self.city,
            country=self.country,
            coordinates=(
                CoordinatesDict(lat=self.coordinates.lat, lng=self.coordinates.lng)
                if self.coordinates
                else None
            ),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Location":
        data = data or {}
        coords = data.get("coordinates")
        return cls(
            address=data.get("address"),
            city=data.get("city"),
            country=data.get("country"),
            coordinates=(
                Coordinates(lat=float(coords["lat"]), lng=float(coords["lng"]))
                if isinstance(coords, dict) and "lat" in coords and "lng" in coords
                else None
            ),
        )


@dataclass
class Event:
    """Canonical external event.

    Both the crawled listings and the AllEvents API are normalised into this
    shape before merging.

    Date formats:
    - start_date, end_date: ISO 8601, either a date (YYYY-MM-DD) or a
      datetime with optional offset.
    - created_at: ISO 8601 datetime.
    """

    id: str  # e.g. "varna_концертнаоткритосцена_20250101" or "ext_12345"
    title: str
    start_date: str | None
    end_date: str | None = None
    description: str = ""
    category: str = "Култура"
    location: Location = field(default_factory=Location)
    duration_minutes: int | None = None
    image_url: str | None = None
    website_url: str | None = None
    price: float = 0.0  # 0 means free
    is_online: bool = False
    is_external: bool = True
    created_at: str = ""
    creator_id: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> EventDict:
        return EventDict(
            id=self.id,
            title=self.title,
            description=self.description,
            category=self.category,
            location=self.location.to_dict(),
            startDate=self.start_date,
            endDate=self.end_date,
            durationMinutes=self.duration_minutes,
            imageUrl=self.image_url,
            websiteUrl=self.website_url,
            price=self.price,
            isOnline=self.is_online,
            isExternal=self.is_external,
            createdAt=self.created_at,
            creatorId=self.creator_id,
            tags=list(self.tags),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Rebuilds an Event from its JSON representation.

        Args:
            data: A dictionary as produced by ``to_dict()``.

        Returns:
            The equivalent Event object.
        """
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description") or "",
            category=data.get("category") or "Култура",
            location=Location.from_dict(data.get("location")),
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            duration_minutes=data.get("durationMinutes"),
            image_url=data.get("imageUrl"),
            website_url=data.get("websiteUrl"),
            price=float(data.get("price") or 0),
            is_online=bool(data.get("isOnline", False)),
            is_external=bool(data.get("isExternal", True)),
            created_at=data.get("createdAt") or "",
            creator_id=data.get("creatorId"),
            tags=list(data.get("tags") or []),
        )
