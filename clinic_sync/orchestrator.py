from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from clinic_sync.config import Config, SyncJob
from clinic_sync.headers import curate_headers, project_rows
from clinic_sync.http_client import RetryingHttpClient
from clinic_sync.output import TabularSink
from clinic_sync.pagination import Paginator
from clinic_sync.request_helpers import build_url, log_exception
from clinic_sync.run_log import SyncResult, record_result
from unnest.json import flatten_records

API_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


def date_window(
    now: pd.Timestamp, timezone: str, days_back: int, days_forward: int
) -> Tuple[str, str]:
    """Whole local days ``[today - days_back, today + days_forward]`` as UTC
    strings in the API's ``YYYY-MM-DDTHH:MM:SSZ`` form."""
    today = now.tz_convert(timezone).normalize()
    start = today - pd.DateOffset(days=days_back)
    end = today + pd.DateOffset(days=days_forward + 1) - pd.Timedelta(seconds=1)
    return (
        start.tz_convert("UTC").strftime(API_DATETIME_FORMAT),
        end.tz_convert("UTC").strftime(API_DATETIME_FORMAT),
    )


class SyncOrchestrator:
    """Pulls one endpoint end to end and replaces its table in the sink."""

    def __init__(
        self,
        config: Config,
        sink: TabularSink,
        log,
        client: Optional[RetryingHttpClient] = None,
        paginator: Optional[Paginator] = None,
        now: Callable[[], pd.Timestamp] = utc_now,
    ):
        self.config = config
        self.sink = sink
        self.log = log
        self.client = client or RetryingHttpClient(
            log, user_agent=config.user_agent
        )
        self.paginator = paginator or Paginator(self.client, log)
        self.now = now
        self.results: List[SyncResult] = []

    # ------------ sync ------------
    def sync(
        self,
        endpoint: str,
        sink_name: str,
        curated_columns: Sequence[str],
        extra_params: Optional[Dict[str, Any]] = None,
    ) -> int:
        started = self.now()
        self.log.info(f"[sync] start endpoint={endpoint} table={sink_name}")
        rows_written = 0
        error: Optional[str] = None
        try:
            records = self.paginator.drain(endpoint, extra_params, self.config)
            rows = flatten_records(records)
            headers = curate_headers(curated_columns, rows)
            table = project_rows(headers, rows)
            self.sink.write_table(sink_name, headers, table)
            rows_written = len(table)
            return rows_written
        except Exception as e:
            error = str(e) or type(e).__name__
            log_exception(
                self.log,
                build_url(self.config.base_url, endpoint),
                e,
                prefix="[sync] ",
            )
            raise
        finally:
            ended = self.now()
            result = SyncResult(
                endpoint=endpoint,
                table=sink_name,
                rows=rows_written,
                started_at=started,
                duration_s=float((ended - started).total_seconds()),
                error=error,
            )
            self.results.append(result)
            record_result(self.sink, self.log, result, prefix="[sync] ")
            self.log.info(
                f"[sync] done endpoint={endpoint} table={sink_name} rows={rows_written} "
                f"duration={result.duration_s:.3f}s status={'OK' if result.ok else 'ERROR'}"
            )

    # ------------ jobs ------------
    def params_for(self, job: SyncJob) -> Dict[str, Any]:
        params = dict(job.params)
        if job.date_field:
            start, end = date_window(
                self.now(), self.config.timezone, job.days_back, job.days_forward
            )
            filters = params.get("q[]") or []
            if isinstance(filters, str):
                filters = [filters]
            params["q[]"] = list(filters) + [
                f"{job.date_field}:>={start}",
                f"{job.date_field}:<={end}",
            ]
        return params

    def run_job(self, job: SyncJob) -> int:
        return self.sync(
            job.endpoint, job.sheet, job.curated_columns, self.params_for(job)
        )

    def run_jobs(self, jobs: Iterable[SyncJob]) -> List[SyncResult]:
        """Run jobs one after another. A failed job is already logged and
        recorded in the run log, so the next one still runs."""
        first = len(self.results)
        for job in jobs:
            try:
                self.run_job(job)
            except Exception as e:
                self.log.error(f"[sync] job {job.name} failed: {e}")
        return self.results[first:]
