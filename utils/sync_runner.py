import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from clinic_sync.config import as_id_list, expand_env_value
from clinic_sync.orchestrator import SyncOrchestrator
from clinic_sync.output import build_sink
from clinic_sync.reports import ReportMerger, default_report_range
from logger.basic_logger import setup_logger
from utils.config_reader import ConfigReader

DEFAULT_REPORT_SHEET = "Practitioner Report"


# --------------------------------
# Parse job parameters
# --------------------------------
def _parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Sync practice-management API resources into tables."
    )
    parser.add_argument("-y", "--yaml_path", required=True, help="Path to the sync YAML (e.g. config/sync.yml)")
    parser.add_argument("--run_mode", choices=["sync", "report", "all"], default="sync")
    parser.add_argument("--job", action="append", default=[], help="Sync job name; repeatable. Default: every configured job")
    parser.add_argument("--report_start", help="YYYY-MM-DD; defaults to report.days_back days ago")
    parser.add_argument("--report_end", help="YYYY-MM-DD; defaults to today")
    parser.add_argument("--log_level", default="INFO")
    parser.add_argument("--extra_env", action="append", default=[], help="KEY=VALUE; repeatable")
    return parser.parse_args(argv)


def run_syncs(reader: ConfigReader, sink, log, names: List[str]) -> List[Dict[str, Any]]:
    jobs = reader.sync_jobs()
    if names:
        known = {j.name for j in jobs}
        missing = [n for n in names if n not in known]
        if missing:
            raise ValueError(f"Unknown sync job(s): {', '.join(missing)}")
        jobs = [j for j in jobs if j.name in names]

    orch = SyncOrchestrator(reader.api_config(), sink, log)
    results = orch.run_jobs(jobs)
    return [
        {
            "endpoint": r.endpoint,
            "table": r.table,
            "rows": r.rows,
            "duration_s": r.duration_s,
            "error": r.error,
        }
        for r in results
    ]


def run_report(reader: ConfigReader, sink, log, start: Optional[str], end: Optional[str]) -> Dict[str, Any]:
    report_cfg = expand_env_value(reader.section("report"))
    config = reader.api_config()
    merger = ReportMerger(config, sink, log)
    if not start or not end:
        d0, d1 = default_report_range(
            merger.now(), config.timezone, int(report_cfg.get("days_back", 30))
        )
        start, end = start or d0, end or d1
    sheet = report_cfg.get("sheet") or DEFAULT_REPORT_SHEET
    rows = merger.run_report(
        sheet,
        start,
        end,
        identifiers=as_id_list(report_cfg.get("practitioner_ids")) or None,
        business_id=report_cfg.get("business_id"),
    )
    return {"table": sheet, "rows": rows, "start": start, "end": end, "error": None}


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    log = setup_logger(args.log_level)

    for kv in args.extra_env:
        if "=" in kv:
            k, v = kv.split("=", 1)
            os.environ[k] = v
            log.info("Set env %s", k)

    reader = ConfigReader(log, Path(args.yaml_path)).load_configurations()
    sink = build_sink(reader.section("output") or {"type": "csv"}, log=log)

    meta: Dict[str, Any] = {}
    if args.run_mode in ("sync", "all"):
        meta["syncs"] = run_syncs(reader, sink, log, args.job)
    if args.run_mode in ("report", "all"):
        try:
            meta["report"] = run_report(reader, sink, log, args.report_start, args.report_end)
        except Exception as e:
            log.error(f"[report] failed: {e}")
            meta["report"] = {"rows": 0, "error": str(e) or type(e).__name__}

    failed = [s for s in meta.get("syncs", []) if s["error"]]
    if meta.get("report", {}).get("error"):
        failed.append(meta["report"])
    print(json.dumps({"status": "error" if failed else "ok", "meta": meta}))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
