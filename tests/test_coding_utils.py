import pytest

from app.utils.coding_utils import (
    validate_code,
    validate_nature,
    next_code,
    split_full_code,
    level_of,
    matches_prefix,
)
from app.utils.default_coding import default_coding_structure


def test_validate_code_pads():
    assert validate_code("group", "3") == "3"
    assert validate_code("subclass", "7") == "07"
    assert validate_code("detail", 12) == "12"


@pytest.mark.parametrize(
    "level, code",
    [("group", "0"), ("group", "10"), ("class", "a"), ("subclass", "100"), ("detail", ""), ("branch", "1")],
)
def test_validate_code_rejects(level, code):
    with pytest.raises(ValueError):
        validate_code(level, code)


def test_validate_nature():
    assert validate_nature("debit") == "DEBIT"
    with pytest.raises(ValueError):
        validate_nature("SIDEWAYS")


def test_next_code_max_plus_one():
    assert next_code("class", []) == "1"
    assert next_code("class", ["1", "2", "3"]) == "4"
    assert next_code("subclass", ["01", "05"]) == "06"


def test_next_code_fills_gap_when_max_used():
    assert next_code("group", ["1", "2", "9"]) == "3"


def test_next_code_full_level():
    assert next_code("group", [str(i) for i in range(1, 10)]) is None


def test_split_full_code():
    assert split_full_code("110102") == {
        "level": "detail", "group": "1", "class": "1", "subclass": "01", "detail": "02",
    }
    assert level_of("41") == "class"
    with pytest.raises(ValueError):
        split_full_code("123")


def test_matches_prefix():
    assert matches_prefix("110101", ["11"])
    assert not matches_prefix("410100", ["11", "8101"])


def test_default_structure_codes_are_valid_and_unique():
    structure = default_coding_structure()
    groups = structure["groups"]
    assert len(groups) == 9
    assert len({g["code"] for g in groups}) == 9

    class_count = 0
    for g in groups:
        validate_code("group", g["code"])
        codes = [c["code"] for c in g["classes"]]
        assert len(codes) == len(set(codes))
        for c in g["classes"]:
            class_count += 1
            validate_code("class", c["code"])
            validate_nature(c["nature"])
            for s in c["sub_classes"]:
                validate_code("subclass", s["code"])
                for d in s["details"]:
                    validate_code("detail", d["code"])
    assert class_count == 17
