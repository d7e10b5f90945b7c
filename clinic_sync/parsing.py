import csv
import json
from io import StringIO
from typing import Any, List, Tuple

import pandas as pd

from clinic_sync.errors import HttpError


def parse_json_body(body_text: str, status: int = 200) -> Any:
    if not (body_text or "").strip():
        return {}
    try:
        return json.loads(body_text)
    except ValueError as e:
        raise HttpError(status, f"response was not valid JSON: {e}") from e


def parse_csv_table(text: str) -> Tuple[List[str], List[List[str]]]:
    """Split a CSV document into (headers, rows), every cell kept as text.

    Short rows come back padded with empty strings to the header width.
    Rows with more cells than the header keep their extra cells.
    """
    text = (text or "").lstrip("\ufeff")
    if not text.strip():
        return [], []
    # read_csv sizes the frame from the first line unless told otherwise
    widths = [len(r) for r in csv.reader(StringIO(text)) if r]
    if not widths:
        return [], []
    df = pd.read_csv(
        StringIO(text),
        header=None,
        names=list(range(max(widths))),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    values = df.fillna("").values.tolist()
    header_len = widths[0]
    headers = [str(h) for h in values[0][:header_len]]
    rows = [
        [str(c) for c in r[: max(header_len, w)]]
        for r, w in zip(values[1:], widths[1:])
    ]
    return headers, rows
