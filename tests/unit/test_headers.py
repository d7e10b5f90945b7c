from clinic_sync.headers import curate_headers, project_rows
from unnest.json import flatten_record


def test_curate_scenario():
    row = flatten_record(
        {"id": 1, "patient": {"id": 7}, "notes": None, "tags": ["a", "b"]}
    )
    assert curate_headers(["id", "patient.id"], [row]) == [
        "id",
        "patient.id",
        "tags",
    ]


def test_curated_prefix_kept_even_when_absent_from_rows():
    rows = [{"z": 1}, {"a": 2}]
    headers = curate_headers(["id", "name"], rows)
    assert headers == ["id", "name", "a", "z"]


def test_extras_sorted_by_code_point_regardless_of_discovery_order():
    rows = [{"b": 1, "B": 1}, {"a.z": 1, "a": 1, "_x": 1}]
    headers = curate_headers([], rows)
    assert headers == sorted(headers)
    assert headers == ["B", "_x", "a", "a.z", "b"]


def test_no_duplicate_headers():
    rows = [{"id": 1, "x": 2}, {"id": 3, "x": 4}]
    headers = curate_headers(["x", "id", "x"], rows)
    assert headers == ["x", "id"]
    assert len(headers) == len(set(headers))


def test_project_rows_fills_missing_with_empty_string():
    headers = ["id", "name", "extra"]
    rows = [{"id": 1, "name": "A"}, {"id": 2, "extra": False}]
    assert project_rows(headers, rows) == [[1, "A", ""], [2, "", False]]


def test_curate_is_stable_across_row_order():
    rows = [{"c": 1}, {"b": 2}, {"a": 3}]
    assert curate_headers(["id"], rows) == curate_headers(["id"], rows[::-1])
