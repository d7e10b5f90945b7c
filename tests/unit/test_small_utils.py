from clinic_sync.small_utils import dig, pad_row, pad_rows

# ---------------- dig ----------------


def test_dig_none_or_empty_path_returns_none():
    assert dig({"a": 1}, None) is None
    assert dig({"a": 1}, "") is None


def test_dig_nested_success_and_missing_key():
    obj = {"links": {"next": "https://api/x?page=2"}}
    assert dig(obj, "links.next") == "https://api/x?page=2"
    assert dig(obj, "links.prev") is None


def test_dig_non_dict_midway_returns_none():
    assert dig({"links": "nope"}, "links.next") is None


# ---------------- pad_row(s) ----------------


def test_pad_row_fills_with_empty_strings_and_never_truncates():
    assert pad_row(["a"], 3) == ["a", "", ""]
    assert pad_row(("a", "b", "c"), 2) == ["a", "b", "c"]


def test_pad_rows_copies_rows():
    rows = [["a"], ["b", "c"]]
    out = pad_rows(rows, 2)
    assert out == [["a", ""], ["b", "c"]]
    assert out[0] is not rows[0]
