"""
Deeply nested and long inputs: realistic depths parse, extreme depths fail cleanly
"""

import sys
import pytest

from parsing import parse_expression, parse_program
from ast_nodes import BinOp
from error_handling import EmberParseError
from helpers import (
    e_binop, e_literal, e_number, e_string, l_function, l_map, p_ident, p_map,
    p_string, s_let, s_raise, s_rescue
)


class TestDeepInput:
  """Test nesting depths found in real programs"""

  @pytest.fixture
  def grammar(self, shared_grammar):
    return shared_grammar

  def test_nested_parentheses(self, grammar):
    assert grammar.parse_expression("(" * 50 + "1" + ")" * 50) == e_number(1)

  def test_nested_parentheses_with_operators(self, grammar):
    result = grammar.parse_expression("(" * 40 + "1 + 2" + ")" * 40 + " * 3")
    assert result == e_binop("*", e_binop("+", e_number(1), e_number(2)), e_number(3))

  def test_nested_maps(self, grammar):
    result = grammar.parse_expression('{ "a" => ' * 30 + "1" + " }" * 30)
    expected = e_number(1)
    for _ in range(30):
      expected = e_literal(l_map([(e_string("a"), expected)]))
    assert result == expected

  def test_nested_function_bodies(self, grammar):
    result = grammar.parse_program("let f = fn() do\n" * 30 + "end\n" * 30)
    body = []
    for _ in range(30):
      body = [s_let("f", e_literal(l_function([], body)))]
    assert result == body

  def test_nested_rescue_blocks(self, grammar):
    result = grammar.parse_program("rescue(e) do\n" * 30 + "raise(1)\n" + "end\n" * 30)
    body = [s_raise(e_number(1))]
    for _ in range(30):
      body = [s_rescue(p_ident("e"), body)]
    assert result == body

  def test_nested_map_patterns(self, grammar):
    result = grammar.parse_pattern('{ "a" => ' * 30 + "x" + " }" * 30)
    expected = p_ident("x")
    for _ in range(30):
      expected = p_map([(p_string("a"), expected)])
    assert result == expected

  def test_long_subtraction_chain(self, grammar):
    result = grammar.parse_expression(" - ".join(str(i) for i in range(200)))

    # walk the right spine instead of comparing a 200-deep tree
    node = result
    for i in range(199):
      assert isinstance(node, BinOp)
      assert node.op == "-"
      assert node.left == e_number(i)
      node = node.right
    assert node == e_number(199)

  def test_long_mixed_chain(self, grammar):
    text = " + ".join("a * b" for _ in range(300))
    result = grammar.parse_expression(text)
    node = result
    for _ in range(299):
      assert node.op == "+"
      assert node.left.op == "*"
      node = node.right
    assert node.op == "*"

  def test_many_statements(self, grammar):
    result = grammar.parse_program("\n".join(f"let v{i} = {i}" for i in range(500)))
    assert len(result) == 500
    assert result[-1] == s_let("v499", e_number(499))


class TestTooDeep:
  """Input deeper than the recursion budget becomes a syntax failure"""

  def test_too_deep_expression(self):
    with pytest.raises(EmberParseError) as exc_info:
      parse_expression("(" * 5000 + "1" + ")" * 5000, "deep.em")

    error = exc_info.value
    assert "nests too deeply" in error.message
    assert error.location == 0
    assert error.line == 1
    assert error.filename == "deep.em"

  def test_too_deep_program(self):
    with pytest.raises(EmberParseError):
      parse_program("let a = " + "{ 1 => " * 5000 + "1" + " }" * 5000)

  def test_recursion_limit_is_restored(self):
    before = sys.getrecursionlimit()
    parse_expression("(" * 50 + "1" + ")" * 50)
    with pytest.raises(EmberParseError):
      parse_expression("(" * 5000 + "1" + ")" * 5000)
    assert sys.getrecursionlimit() == before

  def test_parser_still_works_after_depth_failure(self):
    with pytest.raises(EmberParseError):
      parse_expression("(" * 5000 + "1" + ")" * 5000)
    assert parse_expression("1 - 2") == e_binop("-", e_number(1), e_number(2))
