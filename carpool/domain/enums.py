"""Domain enumerations."""

import enum


class TripStatus(str, enum.Enum):
    PENDING = "PENDING"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


class IdentityKind(str, enum.Enum):
    DRIVER = "DRIVER"
    PASSENGER = "PASSENGER"


def parse_status(value: str) -> TripStatus:
    """Parse a stored status string; raises ``ValueError`` on anything else."""
    return TripStatus(value.strip().upper())
