"""Series store, pending queue, reconciliation and the tracker facade."""

from pricetrack.core.services.pending import Backlog, PendingQueue
from pricetrack.core.services.persistence import DocumentGateway
from pricetrack.core.services.reconciler import merge_backlog, pair_matches, partition_backlog
from pricetrack.core.services.series import SeriesStore, trim_series
from pricetrack.core.services.tracker import PriceTracker, ReconcileReport, RecordOutcome

__all__ = [
    "SeriesStore",
    "trim_series",
    "PendingQueue",
    "Backlog",
    "DocumentGateway",
    "merge_backlog",
    "pair_matches",
    "partition_backlog",
    "PriceTracker",
    "RecordOutcome",
    "ReconcileReport",
]
