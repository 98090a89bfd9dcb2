"""
LevelBoard - Discord Directory Package
======================================

Cached, batched lookups of Discord display names, avatars and guild metadata.
"""

from levelboard.services.directory.cache import EnrichmentCache
from levelboard.services.directory.client import DiscordDirectoryClient, DirectoryRequestError
from levelboard.services.directory.resolver import IdentityResolver
from levelboard.services.directory.results import (
    Resolved,
    Unresolved,
    UnresolvedReason,
)

__all__ = [
    "EnrichmentCache",
    "DiscordDirectoryClient",
    "DirectoryRequestError",
    "IdentityResolver",
    "Resolved",
    "Unresolved",
    "UnresolvedReason",
]
