"""Geofence verification for clock events.

Uses the haversine formula to measure the distance between a device
reading and a branch geofence, then applies an explicit accuracy policy.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from timeclock_payroll.config import get_settings
from timeclock_payroll.errors import InvalidCoordinate, ValidationError

EARTH_RADIUS_METERS = 6_371_000


@dataclass(frozen=True)
class Coordinate:
    """WGS84 point in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidCoordinate(
                f"Latitude {self.latitude} outside -90..90", latitude=self.latitude
            )
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidCoordinate(
                f"Longitude {self.longitude} outside -180..180",
                longitude=self.longitude,
            )

    def format(self, accuracy_meters: float | None = None) -> str:
        """Human readable form, e.g. ``13.756300, 100.501800 (±15m)``."""
        text = f"{self.latitude:.6f}, {self.longitude:.6f}"
        if accuracy_meters:
            text += f" (±{round(accuracy_meters)}m)"
        return text


@dataclass(frozen=True)
class LocationSample:
    """A device-reported position. Untrusted."""

    coords: Coordinate
    accuracy_meters: float
    captured_at: datetime

    def __post_init__(self) -> None:
        if self.accuracy_meters < 0 or math.isnan(self.accuracy_meters):
            raise ValidationError(
                f"Accuracy must be non-negative, got {self.accuracy_meters}",
                accuracy_meters=self.accuracy_meters,
            )


@dataclass(frozen=True)
class Site:
    """Authorized work location. ``center=None`` means not geofenced."""

    center: Coordinate | None
    radius_meters: float
    name: str = ""

    @property
    def is_geofenced(self) -> bool:
        return self.center is not None


class RejectionReason(str, Enum):
    ACCURACY_TOO_LOW = "accuracy_too_low"
    OUTSIDE_RADIUS = "outside_radius"
    LOCATION_MISMATCH = "location_mismatch"


@dataclass(frozen=True)
class Verified:
    """The sample was accepted.

    ``exempt`` is set when the site has no geofence; ``distance_meters`` is
    then ``None``.
    """

    distance_meters: float | None
    accuracy_meters: float | None = None
    exempt: bool = False

    @property
    def verified(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """The sample was refused, with numeric context for messaging."""

    reason: RejectionReason
    distance_meters: float | None
    accuracy_meters: float
    radius_meters: float | None = None

    @property
    def verified(self) -> bool:
        return False

    def describe(self) -> str:
        if self.reason == RejectionReason.ACCURACY_TOO_LOW:
            return (
                f"GPS accuracy {round(self.accuracy_meters)}m is too low. "
                "Move to an area with better signal."
            )
        if self.reason == RejectionReason.OUTSIDE_RADIUS:
            return (
                f"You are {round(self.distance_meters or 0)}m from the workplace "
                f"(max allowed: {round(self.radius_meters or 0)}m)."
            )
        return "Location verification failed. Please contact your manager."


VerificationOutcome = Verified | Rejected


class AccuracyInflationPolicy(str, Enum):
    """How a sample's reported uncertainty widens the geofence.

    FULL:   effective radius = radius + accuracy
    CAPPED: effective radius = radius + min(accuracy, cap)
    NONE:   effective radius = radius
    """

    FULL = "full"
    CAPPED = "capped"
    NONE = "none"


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great circle distance between two points, in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    # Rounding can push h just past 1 for near-antipodal points
    h = min(
        1.0,
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2,
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


class GeoVerifier:
    """Stateless verification of location samples against sites.

    Decision order:
    1. Site without coordinates: accepted (exempt)
    2. accuracy > max_accuracy: ACCURACY_TOO_LOW
    3. distance > effective radius: OUTSIDE_RADIUS
    4. optional coarse reference too far from the sample: LOCATION_MISMATCH
    5. otherwise verified
    """

    def __init__(
        self,
        max_accuracy_meters: float = 100.0,
        inflation_policy: AccuracyInflationPolicy = AccuracyInflationPolicy.FULL,
        inflation_cap_meters: float = 50.0,
        mismatch_threshold_meters: float = 10_000.0,
    ):
        self.max_accuracy_meters = max_accuracy_meters
        self.inflation_policy = inflation_policy
        self.inflation_cap_meters = inflation_cap_meters
        self.mismatch_threshold_meters = mismatch_threshold_meters

    @classmethod
    def from_settings(cls) -> GeoVerifier:
        settings = get_settings()
        return cls(
            max_accuracy_meters=settings.location_accuracy_threshold,
            inflation_policy=AccuracyInflationPolicy(settings.accuracy_inflation_policy),
            inflation_cap_meters=settings.accuracy_inflation_cap_meters,
            mismatch_threshold_meters=settings.location_mismatch_threshold_meters,
        )

    def effective_radius(self, site: Site, accuracy_meters: float) -> float:
        if self.inflation_policy == AccuracyInflationPolicy.FULL:
            return site.radius_meters + accuracy_meters
        if self.inflation_policy == AccuracyInflationPolicy.CAPPED:
            return site.radius_meters + min(accuracy_meters, self.inflation_cap_meters)
        return site.radius_meters

    def verify(
        self,
        sample: LocationSample,
        site: Site,
        reference: Coordinate | None = None,
    ) -> VerificationOutcome:
        """Decide whether ``sample`` was taken inside ``site``.

        Args:
            sample: Device reading
            site: Branch geofence
            reference: Optional coarse position obtained independently of the
                device GPS (e.g. from the network); used to flag spoofing

        Returns:
            Verified or Rejected
        """
        if site.center is None:
            return Verified(
                distance_meters=None,
                accuracy_meters=sample.accuracy_meters,
                exempt=True,
            )

        if sample.accuracy_meters > self.max_accuracy_meters:
            return Rejected(
                reason=RejectionReason.ACCURACY_TOO_LOW,
                distance_meters=None,
                accuracy_meters=sample.accuracy_meters,
                radius_meters=site.radius_meters,
            )

        distance = haversine_distance(sample.coords, site.center)

        if distance > self.effective_radius(site, sample.accuracy_meters):
            return Rejected(
                reason=RejectionReason.OUTSIDE_RADIUS,
                distance_meters=distance,
                accuracy_meters=sample.accuracy_meters,
                radius_meters=site.radius_meters,
            )

        if reference is not None:
            if haversine_distance(sample.coords, reference) > self.mismatch_threshold_meters:
                return Rejected(
                    reason=RejectionReason.LOCATION_MISMATCH,
                    distance_meters=distance,
                    accuracy_meters=sample.accuracy_meters,
                    radius_meters=site.radius_meters,
                )

        return Verified(distance_meters=distance, accuracy_meters=sample.accuracy_meters)


def detect_suspicious_movement(
    previous: LocationSample,
    current: LocationSample,
    max_speed_kmh: float = 100.0,
) -> bool:
    """Flag travel between two samples faster than ``max_speed_kmh``.

    Samples captured at the same instant (or out of order) are suspicious
    whenever they are at different positions.
    """
    distance = haversine_distance(previous.coords, current.coords)
    elapsed = (current.captured_at - previous.captured_at).total_seconds()
    if elapsed <= 0:
        return distance > 0

    speed_kmh = distance / elapsed * 3.6
    return speed_kmh > max_speed_kmh
