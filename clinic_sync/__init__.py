from clinic_sync.config import Config, SyncJob
from clinic_sync.orchestrator import SyncOrchestrator
from clinic_sync.reports import ReportMerger, ReportTable

__all__ = [
    "Config",
    "SyncJob",
    "SyncOrchestrator",
    "ReportMerger",
    "ReportTable",
]
