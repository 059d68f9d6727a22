"""
Ember abstract syntax tree
Immutable node definitions for expressions, statements, literals and rescue patterns
"""

from typing import List, Optional, Tuple, Union
from dataclasses import dataclass
from fractions import Fraction
import re


# ============================================================================
# NODE FAMILIES
# ============================================================================

class Expression:
    """Base class for expression nodes"""
    __slots__ = ()


class Statement:
    """Base class for statement nodes"""
    __slots__ = ()


class LiteralValue:
    """Base class for literal values"""
    __slots__ = ()


class Pattern:
    """Base class for rescue patterns"""
    __slots__ = ()


# ============================================================================
# LITERALS
# ============================================================================

@dataclass(frozen=True)
class NumberLiteral(LiteralValue):
    value: Fraction


@dataclass(frozen=True)
class StringLiteral(LiteralValue):
    value: str


@dataclass(frozen=True)
class BooleanLiteral(LiteralValue):
    value: bool


@dataclass(frozen=True)
class MapLiteral(LiteralValue):
    """Map literal; pairs keep source order and duplicate keys are kept"""
    pairs: Tuple[Tuple[Expression, Expression], ...] = ()


@dataclass(frozen=True)
class FnLiteral(LiteralValue):
    params: Tuple[str, ...]
    body: Tuple[Statement, ...]


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class LiteralExpr(Expression):
    literal: LiteralValue


@dataclass(frozen=True)
class Identifier(Expression):
    name: str


@dataclass(frozen=True)
class BinOp(Expression):
    op: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class IndexAccess(Expression):
    """target[property]; `target.name` is stored as a string literal property"""
    target: Expression
    property: Expression


@dataclass(frozen=True)
class Import(Expression):
    module: Expression


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Assign(Statement):
    declaration: bool
    name: str
    value: Expression


@dataclass(frozen=True)
class IndexAssign(Statement):
    target: Expression
    property: Expression
    value: Expression


@dataclass(frozen=True)
class Call(Statement):
    callee: Expression
    arguments: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Raise(Statement):
    value: Expression


@dataclass(frozen=True)
class Rescue(Statement):
    pattern: Pattern
    body: Tuple[Statement, ...] = ()


# ============================================================================
# PATTERNS
# ============================================================================

@dataclass(frozen=True)
class NumberPattern(Pattern):
    value: Fraction


@dataclass(frozen=True)
class StringPattern(Pattern):
    value: str


@dataclass(frozen=True)
class BooleanPattern(Pattern):
    value: bool


@dataclass(frozen=True)
class IdentifierPattern(Pattern):
    """Binds whatever value it is matched against"""
    name: str


LiteralPattern = Union[NumberPattern, StringPattern, BooleanPattern]


@dataclass(frozen=True)
class MapPattern(Pattern):
    """Structural map pattern; keys are number, string or boolean patterns"""
    pairs: Tuple[Tuple[LiteralPattern, Pattern], ...] = ()


@dataclass(frozen=True)
class StringMatchPattern(Pattern):
    """
    Concatenation pattern compiled to one anchored regex.

    The Nth binding name receives the Nth capture group of `matcher`.
    """
    bindings: Tuple[str, ...]
    matcher: re.Pattern

    @property
    def source(self) -> str:
        return self.matcher.pattern

    def match(self, subject: str) -> Optional[List[Tuple[str, str]]]:
        """Match the whole subject, returning (name, captured) pairs in atom order"""
        found = self.matcher.match(subject)
        if found is None:
            return None
        return list(zip(self.bindings, found.groups()))


Program = List[Statement]
