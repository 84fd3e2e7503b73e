from smartmarks.client.feed import ChangeFeedSubscription, FeedError
from smartmarks.client.identity import SIGNED_IN, SIGNED_OUT, IdentityClient
from smartmarks.client.live_status import LiveStatusTracker
from smartmarks.client.models import Bookmark, Identity
from smartmarks.client.reconciler import ListReconciler
from smartmarks.client.session import BookmarkSession, connect
from smartmarks.client.store import BookmarkStoreClient, StoreError
from smartmarks.client.submitter import MutationSubmitter

__all__ = [
    "Bookmark",
    "BookmarkSession",
    "BookmarkStoreClient",
    "ChangeFeedSubscription",
    "FeedError",
    "Identity",
    "IdentityClient",
    "ListReconciler",
    "LiveStatusTracker",
    "MutationSubmitter",
    "SIGNED_IN",
    "SIGNED_OUT",
    "StoreError",
    "connect",
]
