"""Location verification."""

from timeclock_payroll.geo.verifier import (
    AccuracyInflationPolicy,
    Coordinate,
    GeoVerifier,
    LocationSample,
    Rejected,
    RejectionReason,
    Site,
    VerificationOutcome,
    Verified,
    detect_suspicious_movement,
    haversine_distance,
)

__all__ = [
    "AccuracyInflationPolicy",
    "Coordinate",
    "GeoVerifier",
    "LocationSample",
    "Rejected",
    "RejectionReason",
    "Site",
    "VerificationOutcome",
    "Verified",
    "detect_suspicious_movement",
    "haversine_distance",
]
