"""Offline write queue for the route checklist client."""

from conferencia.config import Settings
from conferencia.connectivity import ManualConnectivity, PollingConnectivityMonitor, probe
from conferencia.errors import ConflictError, NetworkError, StorageError
from conferencia.records import Avaria, Nota, Palete, RecordKind, SimNao, Tipologia
from conferencia.status import SyncStatus
from conferencia.store import DuckDBStore
from conferencia.sync.client import ConferenciaClient
from conferencia.sync.queue import OfflineCount, OfflineQueueManager, SyncReport

__all__ = [
    "Avaria",
    "ConferenciaClient",
    "ConflictError",
    "DuckDBStore",
    "ManualConnectivity",
    "NetworkError",
    "Nota",
    "OfflineCount",
    "OfflineQueueManager",
    "Palete",
    "PollingConnectivityMonitor",
    "RecordKind",
    "Settings",
    "SimNao",
    "StorageError",
    "SyncReport",
    "SyncStatus",
    "Tipologia",
    "probe",
]
