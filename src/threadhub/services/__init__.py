"""Business logic services for the Threadhub application."""

from .cache import ViewCache, get_view_cache
from .identifiers import CommunityRef, RefKind
from .identity import ClerkClient, IdentityProvider, IdentityProviderError, get_identity_provider
from .reconciliation import CommunityReconciler
from .retry import RetryPolicy, with_retry

__all__ = [
    "ClerkClient",
    "CommunityReconciler",
    "CommunityRef",
    "IdentityProvider",
    "IdentityProviderError",
    "RefKind",
    "RetryPolicy",
    "ViewCache",
    "get_identity_provider",
    "get_view_cache",
    "with_retry",
]
