"""Live price/funding feed and trailing-candle reconciliation."""

from fomo.live.feed import LiveFeedService, LiveSubscription
from fomo.live.reconciler import LiveFeedReconciler, reconcile

__all__ = [
    "LiveFeedReconciler",
    "LiveFeedService",
    "LiveSubscription",
    "reconcile",
]
