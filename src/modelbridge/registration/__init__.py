"""Registration of discovered entities and outcome aggregation."""

from modelbridge.registration.discovery import (
    DiscoveryFailure,
    DiscoveryResult,
    PackagingUnit,
    discover,
)
from modelbridge.registration.pipeline import RegistrationPipeline, connection_for
from modelbridge.registration.report import (
    EntityCount,
    EntityIdentity,
    FailureKind,
    RegistrationFailure,
    RegistrationOutcome,
    RegistrationReport,
    classify_failure,
)

__all__ = [
    "DiscoveryFailure",
    "DiscoveryResult",
    "EntityCount",
    "EntityIdentity",
    "FailureKind",
    "PackagingUnit",
    "RegistrationFailure",
    "RegistrationOutcome",
    "RegistrationPipeline",
    "RegistrationReport",
    "classify_failure",
    "connection_for",
    "discover",
]
