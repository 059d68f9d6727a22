"""
Ember Programming Language Parser
Ordered-choice grammar producing immutable AST nodes, built on pyparsing
"""

from typing import Optional
from functools import reduce
import logging
import sys
import threading

# Import pyparsing with error handling
try:
    from pyparsing import (
        Keyword, Literal as PyParsingLiteral, Regex, QuotedString, Forward, Group,
        Opt, ZeroOrMore, OneOrMore, DelimitedList, Suppress, StringEnd, MatchFirst,
        ParserElement, ParseException
    )
    # Enable packrat parsing for performance
    ParserElement.enable_packrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from ast_nodes import (
    Assign, BinOp, BooleanLiteral, BooleanPattern, Call, Expression, FnLiteral,
    Identifier, IdentifierPattern, Import, IndexAccess, IndexAssign, LiteralExpr,
    LiteralValue, MapLiteral, MapPattern, NumberLiteral, NumberPattern, Pattern,
    Program, Raise, Rescue, StringLiteral, StringPattern
)
from error_handling import EmberErrorHandler, EmberParseError
from rationals import build_rational
from string_patterns import compile_string_match

logger = logging.getLogger(__name__)

RESERVED_WORDS = ("let", "fn", "do", "end", "raise", "rescue", "import")
BOOLEAN_WORDS = ("true", "false")

# Each nesting level of the grammar costs pyparsing dozens of Python frames
RECURSION_LIMIT = 20000

# Spaces, newlines and '#' comments; tabs are not trivia
TRIVIA = Suppress(Opt(Regex(r"(?:[ \n]+|#[^\n]*)+").leave_whitespace())).set_name("trivia")


def _token(expr: ParserElement) -> ParserElement:
    """A token never skips leading whitespace and swallows the trivia after it"""
    return expr.leave_whitespace() + TRIVIA


def _sym(text: str) -> ParserElement:
    return Suppress(_token(PyParsingLiteral(text))).set_name(f"'{text}'")


def _kw(word: str) -> ParserElement:
    return Suppress(_token(Keyword(word))).set_name(f"'{word}'")


def _ops(*ops: str) -> ParserElement:
    # callers list longer operators first
    return _token(MatchFirst([PyParsingLiteral(op) for op in ops])).set_name(" ".join(ops))


def _make_rational(tokens):
    int_digits, _, frac_digits = tokens[0].partition(".")
    return build_rational(int_digits, frac_digits or None)


def _fold_right(tokens):
    """operand (op operand)* nests on the right: a - b - c is a - (b - c)"""
    operands, ops = list(tokens[0::2]), list(tokens[1::2])
    return reduce(
        lambda right, pair: BinOp(pair[1], pair[0], right),
        reversed(list(zip(operands, ops))),
        operands[-1],
    )


def _fold_access(tokens):
    return reduce(IndexAccess, tokens[1:], tokens[0])


def _make_index_assign(s, loc, tokens):
    target = tokens[0]
    if not isinstance(target, IndexAccess):
        raise ParseException(s, loc, "Expected an indexed assignment target")
    return IndexAssign(target.target, target.property, tokens[1])


def _pairs(tokens):
    return tuple((key, value) for key, value in tokens[0])


class _RecursionBudget:
    """Raise the interpreter recursion limit while at least one parse is running"""

    def __init__(self, limit: int):
        self.limit = limit
        self._lock = threading.Lock()
        self._active = 0
        self._previous = 0

    def __enter__(self):
        with self._lock:
            if self._active == 0:
                self._previous = sys.getrecursionlimit()
                sys.setrecursionlimit(max(self._previous, self.limit))
            self._active += 1
        return self

    def __exit__(self, *exc_info):
        with self._lock:
            self._active -= 1
            if self._active == 0:
                sys.setrecursionlimit(self._previous)
        return False


_recursion_budget = _RecursionBudget(RECURSION_LIMIT)


class EmberGrammar:
    """Ember grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Build the grammar bottom-up: atoms, expressions, patterns, statements"""

        # Forward declarations for recursive structures
        expression = Forward().leave_whitespace().set_name("expression")
        statement = Forward().leave_whitespace().set_name("statement")
        pattern = Forward().leave_whitespace().set_name("pattern")

        # Punctuation and operators
        lparen, rparen = _sym("("), _sym(")")
        lbracket, rbracket = _sym("["), _sym("]")
        lbrace, rbrace = _sym("{"), _sym("}")
        comma = _sym(",")
        dot = _sym(".")
        fat_arrow = _sym("=>")
        concat = _sym("++")
        assign_op = Suppress(_token(Regex(r"=(?!=)"))).set_name("'='")
        comparison_op = _ops("==", ">=", ">", "<=", "<")
        addition_op = _ops("+", "-")
        multiplication_op = _ops("*", "/")

        # Keywords
        let_kw, fn_kw, do_kw, end_kw = _kw("let"), _kw("fn"), _kw("do"), _kw("end")
        raise_kw, rescue_kw, import_kw = _kw("raise"), _kw("rescue"), _kw("import")
        reserved = MatchFirst([Keyword(word) for word in RESERVED_WORDS + BOOLEAN_WORDS]).leave_whitespace().set_name("reserved word")

        # Lexical atoms
        name = _token(~reserved + Regex(r"[A-Za-z_][A-Za-z0-9_]*")).set_name("identifier")
        number = _token(Regex(r"[0-9]+(?:\.[0-9]+)?").set_parse_action(_make_rational)).set_name("number")
        string = _token(QuotedString('"', esc_char="\\", multiline=True)).set_name("string")
        boolean_word = _token(Keyword("true") | Keyword("false")).set_name("boolean")
        end_of_input = StringEnd().leave_whitespace().set_name("end of input")

        # Blocks
        block = do_kw + Group(ZeroOrMore(statement)) + end_kw

        # Literals
        number_literal = number.copy().set_parse_action(lambda t: NumberLiteral(t[0]))
        string_literal = string.copy().set_parse_action(lambda t: StringLiteral(t[0]))
        boolean_literal = boolean_word.copy().set_parse_action(lambda t: BooleanLiteral(t[0] == "true"))

        map_entry = Group(expression + fat_arrow + expression)
        map_literal = (
            lbrace + Group(Opt(DelimitedList(map_entry, delim=comma))) + rbrace
        ).set_parse_action(lambda t: MapLiteral(_pairs(t))).set_name("map")

        params = Group(Opt(DelimitedList(name, delim=comma)))
        fn_literal = (
            fn_kw + lparen + params + rparen + block
        ).set_parse_action(lambda t: FnLiteral(tuple(t[0]), tuple(t[1]))).set_name("function")

        literal = (
            number_literal | string_literal | boolean_literal | map_literal | fn_literal
        ).set_name("literal")

        # Primary expressions
        literal_expr = literal.copy().set_parse_action(lambda t: LiteralExpr(t[0]))
        identifier_expr = name.copy().set_parse_action(lambda t: Identifier(t[0]))
        paren_expr = lparen + expression + rparen
        primary = (literal_expr | identifier_expr | paren_expr).set_name("primary expression")

        # Access chains fold left: a.b[c] is IndexAccess(IndexAccess(a, "b"), c)
        dot_accessor = dot + name.copy().set_parse_action(lambda t: LiteralExpr(StringLiteral(t[0])))
        index_accessor = lbracket + expression + rbracket
        accessor = index_accessor | dot_accessor
        access_chain = (primary + OneOrMore(accessor)).set_parse_action(_fold_access)
        access = access_chain | primary

        # Binary levels read a flat operand list and fold it from the right,
        # so `1 - 2 - 3` is 1 - (2 - 3)
        multiplication = (
            access + ZeroOrMore(multiplication_op + access)
        ).set_parse_action(_fold_right).set_name("product")
        addition = (
            multiplication + ZeroOrMore(addition_op + multiplication)
        ).set_parse_action(_fold_right).set_name("sum")
        comparison = (
            addition + Opt(comparison_op + addition)
        ).set_parse_action(_fold_right).set_name("comparison")

        import_expr = (
            import_kw + lparen + expression + rparen
        ).set_parse_action(lambda t: Import(t[0])).set_name("import")

        expression <<= import_expr | comparison

        # Patterns
        number_pattern = number.copy().set_parse_action(lambda t: NumberPattern(t[0]))
        string_pattern = string.copy().set_parse_action(lambda t: StringPattern(t[0]))
        boolean_pattern = boolean_word.copy().set_parse_action(lambda t: BooleanPattern(t[0] == "true"))
        identifier_pattern = name.copy().set_parse_action(lambda t: IdentifierPattern(t[0]))

        key_pattern = (number_pattern | string_pattern | boolean_pattern).set_name("map pattern key")
        map_pattern_entry = Group(key_pattern + fat_arrow + pattern)
        map_pattern = (
            lbrace + Group(Opt(DelimitedList(map_pattern_entry, delim=comma))) + rbrace
        ).set_parse_action(lambda t: MapPattern(_pairs(t))).set_name("map pattern")

        atom = (
            number_pattern | string_pattern | identifier_pattern
        ).set_name("string pattern atom")
        string_match = (
            atom + OneOrMore(concat + atom)
        ).set_parse_action(lambda t: compile_string_match(list(t))).set_name("string pattern")

        pattern <<= (
            map_pattern | string_match | number_pattern | boolean_pattern | identifier_pattern | string_pattern
        )

        # Statements
        declaring_assign = (
            let_kw + name + assign_op + expression
        ).set_parse_action(lambda t: Assign(True, t[0], t[1]))
        plain_assign = (
            name + assign_op + expression
        ).set_parse_action(lambda t: Assign(False, t[0], t[1]))
        index_assign = (
            access_chain + assign_op + expression
        ).set_parse_action(_make_index_assign)
        call = (
            access + lparen + Group(Opt(DelimitedList(expression, delim=comma))) + rparen
        ).set_parse_action(lambda t: Call(t[0], tuple(t[1])))
        raise_stmt = (
            raise_kw + lparen + expression + rparen
        ).set_parse_action(lambda t: Raise(t[0]))
        rescue_stmt = (
            rescue_kw + lparen + pattern + rparen + block
        ).set_parse_action(lambda t: Rescue(t[0], tuple(t[1])))

        statement <<= declaring_assign | plain_assign | index_assign | call | raise_stmt | rescue_stmt

        # Entry points: leading trivia, the rule, nothing left over.
        # Trailing text that is not a statement reports why the statement failed.
        program = TRIVIA + Group(ZeroOrMore(statement)) + (end_of_input | statement)

        # Store the main parsers
        self.program = program.parse_with_tabs()
        self.expression_entry = (TRIVIA + expression + end_of_input).parse_with_tabs()
        self.literal_entry = (TRIVIA + literal + end_of_input).parse_with_tabs()
        self.pattern_entry = (TRIVIA + pattern + end_of_input).parse_with_tabs()

        self.statement = statement
        self.expression = expression
        self.literal = literal
        self.pattern = pattern

        if self.debug:
            for element in (statement, expression, pattern):
                element.set_debug()

        logger.debug("Ember grammar ready (debug=%s)", self.debug)

    def _run(self, entry: ParserElement, text: str, filename: str):
        logger.debug("parsing %s (%d chars)", filename, len(text))
        try:
            with _recursion_budget:
                return entry.parse_string(text, parse_all=True)
        except ParseException as e:
            logger.debug("parse of %s failed at char %d: %s", filename, e.loc, e.msg)
            raise EmberErrorHandler(text, filename).enhance_parse_exception(e) from e
        except RecursionError as e:
            logger.debug("parse of %s exceeded the nesting limit", filename)
            raise EmberErrorHandler(text, filename).nesting_too_deep() from e

    def parse_program(self, text: str, filename: str = "<input>") -> Program:
        """Parse a complete Ember program into its statements"""
        result = self._run(self.program, text, filename)
        statements = list(result[0])
        logger.debug("parsed %d statements from %s", len(statements), filename)
        return statements

    def parse_expression(self, text: str, filename: str = "<input>") -> Expression:
        """Parse a single Ember expression"""
        return self._run(self.expression_entry, text, filename)[0]

    def parse_literal(self, text: str, filename: str = "<input>") -> LiteralValue:
        """Parse a single literal value"""
        return self._run(self.literal_entry, text, filename)[0]

    def parse_pattern(self, text: str, filename: str = "<input>") -> Pattern:
        """Parse a single rescue pattern"""
        return self._run(self.pattern_entry, text, filename)[0]


class EmberParser:
    """Main Ember parser entry point for hosts"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = EmberGrammar(debug)

    def parse_file(self, filepath: str) -> Program:
        """Parse an Ember source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise EmberParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise EmberParseError(f"Cannot decode file {filepath}: {e}", filename=filepath) from e
        return self.grammar.parse_program(content, filepath)

    def parse_program(self, text: str, filename: str = "<input>") -> Program:
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> Expression:
        return self.grammar.parse_expression(text, filename)

    def parse_literal(self, text: str, filename: str = "<input>") -> LiteralValue:
        return self.grammar.parse_literal(text, filename)

    def parse_pattern(self, text: str, filename: str = "<input>") -> Pattern:
        return self.grammar.parse_pattern(text, filename)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> EmberParser:
    """Create an Ember parser"""
    return EmberParser(debug=debug)


def create_debug_parser() -> EmberParser:
    """Create an Ember parser with pyparsing tracing enabled"""
    return EmberParser(debug=True)


_shared_parser: Optional[EmberParser] = None


def _default_parser() -> EmberParser:
    # the grammar is never mutated after construction, so one instance serves every caller
    global _shared_parser
    if _shared_parser is None:
        _shared_parser = create_parser()
    return _shared_parser


def parse_program(text: str, filename: str = "<input>") -> Program:
    return _default_parser().parse_program(text, filename)


def parse_expression(text: str, filename: str = "<input>") -> Expression:
    return _default_parser().parse_expression(text, filename)


def parse_literal(text: str, filename: str = "<input>") -> LiteralValue:
    return _default_parser().parse_literal(text, filename)


def parse_pattern(text: str, filename: str = "<input>") -> Pattern:
    return _default_parser().parse_pattern(text, filename)
