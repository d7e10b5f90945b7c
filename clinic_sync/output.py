from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd
import yaml

RowRange = Tuple[int, int]


def serialize_table(
    headers: Sequence[str], rows: Sequence[Sequence[Any]], sep: str = ","
) -> bytes:
    df = pd.DataFrame([list(r) for r in rows], columns=list(headers))
    return df.to_csv(index=False, sep=sep, lineterminator="\n").encode("utf-8")


class TabularSink:
    """Row/column store the syncs write into.

    ``write_table`` fully replaces a table. ``append_log_row`` adds one row
    to a table, creating it if needed. ``is_empty`` tells whether a table has
    no rows yet. ``apply_choice_constraint`` limits the
    cells of ``column_name`` in the inclusive 1-based ``row_range`` to
    ``allowed_values``; the header is row 1.
    """

    def write_table(
        self, name: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> None:
        raise NotImplementedError

    def append_log_row(self, name: str, cells: Sequence[Any]) -> None:
        raise NotImplementedError

    def get_or_create_table(self, name: str) -> Any:
        raise NotImplementedError

    def is_empty(self, name: str) -> bool:
        raise NotImplementedError

    def apply_choice_constraint(
        self,
        table: str,
        column_name: str,
        allowed_values: Sequence[str],
        row_range: RowRange,
    ) -> None:
        raise NotImplementedError


class InMemorySink(TabularSink):
    def __init__(self):
        self.tables: Dict[str, Dict[str, Any]] = {}
        self.constraints: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def get_or_create_table(self, name: str) -> Dict[str, Any]:
        return self.tables.setdefault(name, {"headers": [], "rows": []})

    def is_empty(self, name: str) -> bool:
        t = self.tables.get(name) or {}
        return not t.get("headers") and not t.get("rows")

    def write_table(self, name, headers, rows) -> None:
        self.tables[name] = {
            "headers": list(headers),
            "rows": [list(r) for r in rows],
        }

    def append_log_row(self, name, cells) -> None:
        self.get_or_create_table(name)["rows"].append(list(cells))

    def apply_choice_constraint(
        self, table, column_name, allowed_values, row_range
    ) -> None:
        self.constraints.setdefault(table, {})[column_name] = {
            "allowed": list(allowed_values),
            "rows": list(row_range),
        }


class CsvDirectorySink(TabularSink):
    """One ``<name>.csv`` per table under ``root``; choice constraints are
    kept next to it in ``<name>.validation.yml``."""

    def __init__(self, root, log=None):
        self.root = Path(root)
        self.log = log

    def _csv(self, name: str) -> Path:
        return self.root / f"{name}.csv"

    def _rules(self, name: str) -> Path:
        return self.root / f"{name}.validation.yml"

    def get_or_create_table(self, name: str) -> Path:
        path = self._csv(name)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        return path

    def is_empty(self, name: str) -> bool:
        path = self._csv(name)
        return not path.exists() or path.stat().st_size == 0

    def write_table(self, name, headers, rows) -> None:
        path = self.get_or_create_table(name)
        body = serialize_table(headers, rows)
        path.write_bytes(body)
        if self.log:
            self.log.info(
                f"[output] Wrote {len(rows)} rows ({len(body)} bytes) to {path}"
            )

    def append_log_row(self, name, cells) -> None:
        path = self.get_or_create_table(name)
        line = pd.DataFrame([list(cells)]).to_csv(
            index=False, header=False, lineterminator="\n"
        )
        with open(path, "a", encoding="utf-8", newline="") as fh:
            fh.write(line)

    def apply_choice_constraint(
        self, table, column_name, allowed_values, row_range
    ) -> None:
        path = self._rules(table)
        rules = {}
        if path.exists():
            rules = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        rules[column_name] = {
            "allowed": list(allowed_values),
            "rows": list(row_range),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(rules, sort_keys=True), encoding="utf-8")


class S3Sink(TabularSink):
    """Tables as CSV objects under ``s3://bucket/prefix/<name>.csv``."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        log=None,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        bucket = (bucket or "").strip()
        if not bucket:
            raise ValueError("output.s3.bucket is required.")
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self.log = log
        self._client = client
        self.region_name = region_name
        self.endpoint_url = endpoint_url

    @property
    def client(self):
        if self._client is None:
            try:
                import boto3
            except Exception as e:
                raise RuntimeError("boto3 is required for S3 output.") from e

            session = (
                boto3.session.Session(region_name=self.region_name)
                if self.region_name
                else boto3.session.Session()
            )
            self._client = session.client("s3", endpoint_url=self.endpoint_url)
        return self._client

    def _key(self, name: str, suffix: str = ".csv") -> str:
        return "/".join(p for p in [self.prefix, f"{name}{suffix}"] if p)

    def _get(self, key: str) -> Optional[bytes]:
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except self.client.exceptions.NoSuchKey:
            return None
        return obj["Body"].read()

    def _put(self, key: str, body: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket, Key=key, Body=body, ContentType=content_type
        )

    def get_or_create_table(self, name: str) -> str:
        key = self._key(name)
        if self._get(key) is None:
            self._put(key, b"", "text/csv")
        return f"s3://{self.bucket}/{key}"

    def is_empty(self, name: str) -> bool:
        return not self._get(self._key(name))

    def write_table(self, name, headers, rows) -> None:
        key = self._key(name)
        body = serialize_table(headers, rows)
        self._put(key, body, "text/csv")
        if self.log:
            self.log.info(
                f"[output] Wrote {len(rows)} rows ({len(body)} bytes) to s3://{self.bucket}/{key}"
            )

    def append_log_row(self, name, cells) -> None:
        key = self._key(name)
        buf = BytesIO()
        buf.write(self._get(key) or b"")
        buf.write(
            pd.DataFrame([list(cells)])
            .to_csv(index=False, header=False, lineterminator="\n")
            .encode("utf-8")
        )
        self._put(key, buf.getvalue(), "text/csv")

    def apply_choice_constraint(
        self, table, column_name, allowed_values, row_range
    ) -> None:
        key = self._key(table, ".validation.yml")
        raw = self._get(key)
        rules = (yaml.safe_load(raw) or {}) if raw else {}
        rules[column_name] = {
            "allowed": list(allowed_values),
            "rows": list(row_range),
        }
        self._put(
            key,
            yaml.safe_dump(rules, sort_keys=True).encode("utf-8"),
            "application/x-yaml",
        )


def build_sink(out_cfg: Dict[str, Any], log=None) -> TabularSink:
    if not out_cfg:
        raise ValueError("Output config is required but missing ('output').")
    kind = (out_cfg.get("type") or "csv").lower()
    if kind == "memory":
        return InMemorySink()
    if kind == "csv":
        return CsvDirectorySink(out_cfg.get("directory") or "output", log=log)
    if kind == "s3":
        s3_cfg = out_cfg.get("s3") or {}
        return S3Sink(
            bucket=s3_cfg.get("bucket", ""),
            prefix=s3_cfg.get("prefix", ""),
            log=log,
            region_name=s3_cfg.get("region_name"),
            endpoint_url=s3_cfg.get("endpoint_url"),
        )
    raise ValueError(f"Unsupported output.type: {kind}")
