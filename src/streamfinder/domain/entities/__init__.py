from .candidate import (
    Candidate,
    FavoriteRecord,
    QualityInfo,
    ScoredCandidate,
    SourceDescriptor,
    SourceSummary,
)
from .errors import (
    NoResultsFoundError,
    NoSourcesConfiguredError,
    ProbeError,
    ProviderTimeoutError,
    SearchCancelled,
    SearchError,
    SearchFailedError,
    TransportError,
)
from .session import FailoverResult, SessionPhase, SessionSnapshot

__all__ = [
    "Candidate",
    "FailoverResult",
    "FavoriteRecord",
    "NoResultsFoundError",
    "NoSourcesConfiguredError",
    "ProbeError",
    "ProviderTimeoutError",
    "QualityInfo",
    "ScoredCandidate",
    "SearchCancelled",
    "SearchError",
    "SearchFailedError",
    "SessionPhase",
    "SessionSnapshot",
    "SourceDescriptor",
    "SourceSummary",
    "TransportError",
]
