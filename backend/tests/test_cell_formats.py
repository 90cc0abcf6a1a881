import pytest

from app.services.cell_formats import (
    MAX_QUANTITY,
    cell_text,
    parse_flag,
    parse_pair_map,
    parse_quantity,
    split_list,
)
from app.services.import_errors import ParseError


def test_split_list_trims_and_drops_empties():
    assert split_list(" tools, garden ,, kitchen ") == ["tools", "garden", "kitchen"]
    assert split_list("") == []
    assert split_list(None) == []


def test_split_list_renders_numbers():
    assert split_list(5) == ["5"]
    assert split_list(5.0) == ["5"]


def test_parse_pair_map():
    assert parse_pair_map("US:19.99, EU:17.50") == {"US": 19.99, "EU": 17.5}
    assert parse_pair_map("US:10") == {"US": 10}
    assert parse_pair_map("") == {}


def test_parse_pair_map_splits_on_first_colon_only():
    with pytest.raises(ParseError):
        parse_pair_map("US:1:2")


@pytest.mark.parametrize("cell", ["US10", "US:abc", ":5", "US:"])
def test_parse_pair_map_rejects_malformed_tokens(cell):
    with pytest.raises(ParseError):
        parse_pair_map(cell)


def test_parse_flag():
    assert parse_flag(1) is True
    assert parse_flag("0") is False
    assert parse_flag("") is None
    with pytest.raises(ParseError):
        parse_flag("maybe")


def test_parse_quantity():
    assert parse_quantity("7") == 7
    assert parse_quantity(3.0) == 3
    for bad in ("-1", "2.5", "lots"):
        with pytest.raises(ParseError):
            parse_quantity(bad)


def test_parse_quantity_is_bounded_by_integer_column():
    assert parse_quantity(MAX_QUANTITY) == MAX_QUANTITY
    with pytest.raises(ParseError, match="exceeds"):
        parse_quantity(MAX_QUANTITY + 1)
    with pytest.raises(ParseError):
        parse_quantity("99999999999999999999")


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text("  Widget ") == "Widget"
    assert cell_text(12.0) == "12"
