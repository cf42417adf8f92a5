from .fingerprint import (
    CacheAction,
    CacheDecision,
    Fingerprint,
    FingerprintCache,
    read_metadata,
    write_metadata,
)
from .store import ArtifactCache, CachedArtifact

__all__ = [
    "ArtifactCache",
    "CacheAction",
    "CacheDecision",
    "CachedArtifact",
    "Fingerprint",
    "FingerprintCache",
    "read_metadata",
    "write_metadata",
]
