import json
from typing import Any, Dict, Iterable, List

Scalar = Any  # str | int | float | bool


def _stringify_element(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (dict, list)):
        return json.dumps(v, separators=(",", ":"), ensure_ascii=False)
    return str(v)


def flatten_record(record: Dict[str, Any], sep: str = ".") -> Dict[str, Scalar]:
    """Flatten one nested JSON record into a single-level row.

    - ``None`` values are dropped, so the path never appears in the row
    - scalars are kept as-is under their dotted path
    - arrays are NOT exploded: each element is rendered to text (objects and
      nested arrays as compact JSON) and the pieces joined with ``", "``
    - nested objects recurse, ``parent.child`` style

    Top-level keys are unprefixed.

    Parameters
    ----------
    record : dict
        One record as decoded from the API.
    sep : str
        Separator between path segments (default ".").

    Returns
    -------
    dict
    """
    out: Dict[str, Scalar] = {}

    def _walk(value: Any, path: str) -> None:
        if value is None:
            return
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(v, f"{path}{sep}{k}" if path else str(k))
            return
        if isinstance(value, list):
            out[path] = ", ".join(_stringify_element(v) for v in value)
            return
        out[path] = value

    if isinstance(record, dict):
        _walk(record, "")
    return out


def flatten_records(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Scalar]]:
    return [flatten_record(r) for r in records]
