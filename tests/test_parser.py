import pytest

from dendron import Assign, BinaryOp, Constant, Print, UnaryOp, Variable, display, parse, tokenize
from errors import IllegalValue, PrematureEnd


def test_parse_assignment_and_print():
    program = parse([":=", "x", "55", "#", "x"])

    assert len(program) == 2
    assign, show = program.actions
    assert isinstance(assign, Assign)
    assert assign.name == "x"
    assert isinstance(assign.expr, Constant) and assign.expr.value == 55
    assert isinstance(show, Print)
    assert isinstance(show.expr, Variable) and show.expr.name == "x"


def test_binary_operands_are_parsed_left_then_right():
    program = parse(["#", "-", "5", "25"])
    expr = program.actions[0].expr

    assert isinstance(expr, BinaryOp)
    assert expr.op == "-"
    assert expr.left.value == 5
    assert expr.right.value == 25


def test_unary_operators_take_one_operand():
    expr = parse(["#", "_", "%", "25"]).actions[0].expr

    assert isinstance(expr, UnaryOp) and expr.op == "_"
    assert isinstance(expr.operand, UnaryOp) and expr.operand.op == "%"
    assert expr.operand.operand.value == 25


def test_negative_literal_is_a_constant():
    expr = parse(["#", "/", "x", "-2"]).actions[0].expr

    assert isinstance(expr.right, Constant)
    assert expr.right.value == -2


def test_parser_does_not_consume_caller_tokens():
    tokens = [":=", "a", "3", "#", "a"]
    parse(tokens)

    assert tokens == [":=", "a", "3", "#", "a"]


def test_empty_program():
    assert len(parse([])) == 0


def test_infix_display():
    tokens = tokenize(":= a 3 := b 4 := c 5 := result + * b b _ * * 4 a c # % result")

    assert display(parse(tokens)) == [
        "a := 3",
        "b := 4",
        "c := 5",
        "result := ( ( b * b ) + _( ( 4 * a ) * c ) )",
        "Print %result",
    ]


def test_numeral_assignment_target_is_illegal():
    with pytest.raises(IllegalValue) as exc:
        parse([":=", "42", "+", "5", "0"])
    assert exc.value.value == "42"


def test_trailing_assign_keyword_is_premature_end():
    with pytest.raises(PrematureEnd):
        parse([":=", "x", "9", ":="])


def test_trailing_print_keyword_is_premature_end():
    with pytest.raises(PrematureEnd):
        parse(["#"])


def test_missing_expression_is_illegal_value():
    with pytest.raises(IllegalValue):
        parse([":=", "y"])
    with pytest.raises(IllegalValue):
        parse([":=", "x", "9", "%"])


def test_dangling_expression_is_not_an_action():
    with pytest.raises(IllegalValue) as exc:
        parse([":=", "x", "9", "+", "7", "9"])
    assert exc.value.value == "+"


def test_unknown_expression_token():
    with pytest.raises(IllegalValue) as exc:
        parse(["#", "$"])
    assert exc.value.value == "$"


def test_only_ascii_digits_make_numerals():
    with pytest.raises(IllegalValue):
        parse(["#", "٣"])
