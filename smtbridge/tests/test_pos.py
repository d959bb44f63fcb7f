from smtbridge.pos import Pos, Source


def test_line_numbers_for_all_terminators():
    source = Source("a\nb\r\nc\rd")
    assert [source.line_number(i) for i in (0, 2, 5, 7)] == [1, 2, 3, 4]
    assert source.line_beginning(3) == 2
    assert source.text_line(2) == "b"
    assert source.text_line(7) == "d"


def test_describe():
    source = Source("(assert\n  (> x 1.5))", "t.smt2")
    pos = Pos(15, 18, source)
    assert pos.line_number() == 2
    assert pos.column() == 8
    assert pos.text_line() == "  (> x 1.5))"
    assert pos.describe_short() == "t.smt2:2:8"
    assert pos.describe() == "t.smt2:2:8\n  (> x 1.5))\n       ^^^"


def test_without_source():
    pos = Pos(3, 5)
    assert pos.line_number() is None
    assert pos.describe() == "characters 3-5"


def test_position_is_not_part_of_equality():
    assert Pos(1, 2, Source("xyz")) == Pos(1, 2, Source("abc"))
