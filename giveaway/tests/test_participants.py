import pytest

from giveaway.errors import EmptyParticipants
from giveaway.participants import load_participants, parse_participants


def test_one_per_line_trimmed_blanks_dropped():
    text = "  alice \n\nbob\n   \n carol\r\n"
    assert parse_participants(text) == ["alice", "bob", "carol"]


def test_order_and_duplicates_are_kept():
    assert parse_participants("b\na\nb") == ["b", "a", "b"]


def test_empty_text_gives_empty_list():
    assert parse_participants("") == []
    assert parse_participants("\n \n") == []


def test_load_participants(tmp_path):
    f = tmp_path / "entrants.txt"
    f.write_text("0xaaa\n0xbbb\n", encoding="utf-8")
    assert load_participants(f) == ["0xaaa", "0xbbb"]

    empty = tmp_path / "empty.txt"
    empty.write_text("\n\n", encoding="utf-8")
    with pytest.raises(EmptyParticipants):
        load_participants(empty)
