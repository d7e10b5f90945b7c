import traceback
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from clinic_sync.output import TabularSink

RUN_LOG_TABLE = "Sync Log"
RUN_LOG_HEADERS = [
    "Timestamp",
    "Endpoint",
    "Table",
    "Rows",
    "Duration (s)",
    "Status",
    "Error",
]


@dataclass(frozen=True)
class SyncResult:
    endpoint: str
    table: str
    rows: int
    started_at: pd.Timestamp
    duration_s: float
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def cells(self) -> List[object]:
        return [
            self.started_at.isoformat(),
            self.endpoint,
            self.table,
            self.rows,
            round(self.duration_s, 3),
            "OK" if self.ok else "ERROR",
            self.error or "",
        ]


def append_run_log(
    sink: TabularSink, result: SyncResult, table: str = RUN_LOG_TABLE
) -> None:
    """Add one row to the run log, writing the header row on first use."""
    sink.get_or_create_table(table)
    if sink.is_empty(table):
        sink.append_log_row(table, RUN_LOG_HEADERS)
    sink.append_log_row(table, result.cells())


def record_result(
    sink: TabularSink, log, result: SyncResult, prefix: str = ""
) -> None:
    """``append_run_log`` for ``finally`` blocks: a sink failure is logged so
    the error of the run itself still reaches the caller."""
    try:
        append_run_log(sink, result)
    except Exception as e:
        log.error(
            f"{prefix}Could not append to {RUN_LOG_TABLE}: {e}\nStack Trace: {traceback.format_exc()}"
        )
