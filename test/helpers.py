"""
Shorthand constructors for expected AST nodes
"""

from fractions import Fraction

from ast_nodes import (
    Assign, BinOp, BooleanLiteral, BooleanPattern, Call, FnLiteral, Identifier,
    IdentifierPattern, Import, IndexAccess, IndexAssign, LiteralExpr, MapLiteral,
    MapPattern, NumberLiteral, NumberPattern, Raise, Rescue, StringLiteral, StringPattern
)


def l_number(num, denom=1):
  return NumberLiteral(Fraction(num, denom))


def l_string(value):
  return StringLiteral(value)


def l_bool(value):
  return BooleanLiteral(value)


def l_map(pairs):
  return MapLiteral(tuple(pairs))


def l_function(params, statements):
  return FnLiteral(tuple(params), tuple(statements))


def e_literal(literal):
  return LiteralExpr(literal)


def e_number(num, denom=1):
  return e_literal(l_number(num, denom))


def e_string(value):
  return e_literal(l_string(value))


def e_identifier(name):
  return Identifier(name)


def e_binop(op, left, right):
  return BinOp(op, left, right)


def e_index(target, prop):
  return IndexAccess(target, prop)


def e_import(module):
  return Import(module)


def s_let(name, value):
  return Assign(True, name, value)


def s_assign(name, value):
  return Assign(False, name, value)


def s_index_assign(target, prop, value):
  return IndexAssign(target, prop, value)


def s_call(callee, args):
  return Call(callee, tuple(args))


def s_raise(value):
  return Raise(value)


def s_rescue(pattern, statements):
  return Rescue(pattern, tuple(statements))


def p_number(num, denom=1):
  return NumberPattern(Fraction(num, denom))


def p_string(value):
  return StringPattern(value)


def p_bool(value):
  return BooleanPattern(value)


def p_ident(name):
  return IdentifierPattern(name)


def p_map(pairs):
  return MapPattern(tuple(pairs))
