from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from clinic_sync.config import Config
from clinic_sync.errors import ConfigError
from clinic_sync.http_client import CSV, RetryingHttpClient
from clinic_sync.orchestrator import utc_now
from clinic_sync.output import TabularSink
from clinic_sync.parsing import parse_csv_table
from clinic_sync.request_helpers import log_exception, with_query
from clinic_sync.run_log import SyncResult, record_result
from clinic_sync.small_utils import pad_rows

IDENTIFIER_COLUMN = "Practitioner ID"

# Workflow columns staff fill in by hand after each report run.
ANNOTATION_CHOICES = {
    "Review Status": ["Pending", "In Progress", "Done"],
    "Follow Up": ["Yes", "No"],
}

REPORT_DATE_FORMAT = "%Y-%m-%d"


@dataclass
class ReportTable:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


def default_report_range(
    now: pd.Timestamp, timezone: str, days_back: int
) -> Tuple[str, str]:
    today = now.tz_convert(timezone).normalize()
    start = today - pd.DateOffset(days=days_back)
    return start.strftime(REPORT_DATE_FORMAT), today.strftime(REPORT_DATE_FORMAT)


def annotate(table: ReportTable) -> ReportTable:
    headers = list(table.headers)
    for col in ANNOTATION_CHOICES:
        if col not in headers:
            headers.append(col)
    return ReportTable(headers, pad_rows(table.rows, len(headers)))


class ReportMerger:
    """Fetches the per-practitioner CSV report and stacks the results into
    one table.

    The first identifier that returns a header row fixes the columns. When
    that header row has no identifier column, rows from later identifiers
    get their identifier appended as a trailing cell.
    """

    def __init__(
        self,
        config: Config,
        sink: TabularSink,
        log,
        client: Optional[RetryingHttpClient] = None,
        now: Callable[[], pd.Timestamp] = utc_now,
        identifier_column: str = IDENTIFIER_COLUMN,
    ):
        self.config = config
        self.sink = sink
        self.log = log
        self.client = client or RetryingHttpClient(
            log, user_agent=config.user_agent
        )
        self.now = now
        self.identifier_column = identifier_column

    def _report_url(
        self, identifier: str, start_date: str, end_date: str, business_id
    ) -> str:
        params = {
            "start_date": start_date,
            "end_date": end_date,
            "practitioner_id": identifier,
            "business_id": business_id,
        }
        return with_query(self.config.report_base_url, params)

    def merge_reports(
        self,
        identifiers: Sequence[str],
        start_date: str,
        end_date: str,
        business_id: Optional[str] = None,
    ) -> ReportTable:
        if not identifiers:
            raise ConfigError("No practitioner ids configured for the report.")
        if not self.config.report_base_url:
            raise ConfigError("api.report_base_url is not configured.")
        business_id = business_id or self.config.report_business_id

        headers: List[str] = []
        parts: List[Tuple[Optional[str], List[List[str]]]] = []
        for ident in identifiers:
            ident = str(ident)
            url = self._report_url(ident, start_date, end_date, business_id)
            resp = self.client.fetch(url, self.config.api_key, accept=CSV)
            part_headers, part_rows = parse_csv_table(resp.body_text)
            self.log.info(
                f"[report] practitioner={ident} rows={len(part_rows)}"
            )

            if not headers:
                # first non-empty header row is the schema for every identifier
                headers = list(part_headers)
                parts.append((None, part_rows))
            else:
                parts.append((ident, part_rows))

        tag = self.identifier_column not in headers
        width = max([len(headers)] + [len(r) for _, rs in parts for r in rs])
        if width > len(headers):
            self.log.info(
                f"[report] {width - len(headers)} unnamed trailing column(s) in report rows"
            )
            headers.extend(f"Column {i + 1}" for i in range(len(headers), width))

        rows: List[List[str]] = []
        for ident, part_rows in parts:
            for r in pad_rows(part_rows, width):
                rows.append(r + [ident] if tag and ident else r)

        if tag:
            headers.append(self.identifier_column)
        return ReportTable(headers, pad_rows(rows, len(headers)))

    def write_report(self, sink_name: str, table: ReportTable) -> int:
        self.sink.write_table(sink_name, table.headers, table.rows)
        if table.rows:
            # header is row 1, data starts on row 2
            row_range = (2, len(table.rows) + 1)
            for col, allowed in ANNOTATION_CHOICES.items():
                self.sink.apply_choice_constraint(
                    sink_name, col, allowed, row_range
                )
        return len(table.rows)

    def run_report(
        self,
        sink_name: str,
        start_date: str,
        end_date: str,
        identifiers: Optional[Sequence[str]] = None,
        business_id: Optional[str] = None,
    ) -> int:
        ids = list(identifiers or self.config.practitioner_ids)
        started = self.now()
        self.log.info(
            f"[report] start table={sink_name} range={start_date}..{end_date} practitioners={len(ids)}"
        )
        written = 0
        error: Optional[str] = None
        try:
            table = annotate(
                self.merge_reports(ids, start_date, end_date, business_id)
            )
            written = self.write_report(sink_name, table)
            return written
        except Exception as e:
            error = str(e) or type(e).__name__
            log_exception(
                self.log,
                self.config.report_base_url or "<report_base_url unset>",
                e,
                prefix="[report] ",
            )
            raise
        finally:
            ended = self.now()
            record_result(
                self.sink,
                self.log,
                SyncResult(
                    endpoint="report",
                    table=sink_name,
                    rows=written,
                    started_at=started,
                    duration_s=float((ended - started).total_seconds()),
                    error=error,
                ),
                prefix="[report] ",
            )
