"""
Error handling for the Ember parser
Syntax failures carry position, expectations and context; fatal errors abort parsing outright
"""

from typing import List, Optional, Dict
from pyparsing import ParseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None,
    filename: str = "<input>"
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or [],
        'filename': filename
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = f"Parse error in {error['filename']} at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseException) -> List[str]:
    """Extract expected tokens from exception"""
    expected = []

    # pyparsing reports "Expected <element>, found <text>"
    expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found\b|\s+\(at char|$)", exc.msg or "")
    if expected_match:
        expected.append(expected_match.group(1))

    return expected if expected else ["valid syntax"]


def extract_got(source_text: str, location: int) -> str:
    """Extract what was actually found at the error location"""
    if location >= len(source_text):
        return "end of input"

    error_line = source_text[location:].split('\n', 1)[0]
    got_text = error_line[:10].strip()
    if got_text:
        return f"'{got_text}'"
    return "end of line"


def generate_suggestions(exc: ParseException, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    bare_got = got.strip("'")
    first_word = bare_got.split(' ', 1)[0] if bare_got else ""

    if first_word in ("let", "fn", "do", "end", "raise", "rescue", "import"):
        suggestions.append(f"'{first_word}' is a reserved word and cannot be used as a name")

    if first_word in ("true", "false"):
        suggestions.append(f"'{first_word}' is a boolean literal and cannot be used as a name")

    if exc.pstr[exc.loc:exc.loc + 1] in ("\t", "\r"):
        suggestions.append("Only spaces and newlines separate tokens - replace tabs and carriage returns")

    if "end of input" in got and "end" in str(expected):
        suggestions.append("Every 'do' block must be closed with 'end'")

    if ":" in got:
        suggestions.append("Map entries are written as key => value")

    if "+" in got and "pattern" in str(expected):
        suggestions.append("String patterns join atoms with '++'")

    if bare_got.startswith("(") and "end of text" in str(expected):
        suggestions.append("Calls are statements - a call cannot be used inside an expression")

    return suggestions


def enhance_parse_exception_dict(exc: ParseException, source_text: str, filename: str = "<input>") -> Dict:
    """Convert pyparsing exception to enhanced Ember error dict"""
    line_num = exc.lineno
    col_num = exc.column

    # Get context around the error
    context = get_context_lines(source_text, line_num, col_num)

    # Extract what was expected
    expected = extract_expected(exc)

    # Extract what was actually found
    got = extract_got(source_text, exc.loc)

    # Generate suggestions
    suggestions = generate_suggestions(exc, got, expected)

    return make_parse_error(
        message=str(exc),
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions,
        filename=filename
    )


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EmberParseError(Exception):
    """Syntax failure: no alternative matched at the reported position"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 filename: str = "<input>"):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions,
            self.filename
        )
        return format_parse_error(error_dict)


class FatalParseError(Exception):
    """Construction failure that aborts the parse instead of trying another alternative"""
    pass


class NumericLiteralError(FatalParseError):
    """Digit text that could not be turned into an integer"""
    pass


class UnsupportedPatternAtomError(FatalParseError):
    """A pattern that cannot take part in a ++ string match"""
    pass


class PatternCompileError(FatalParseError):
    """The assembled string-match regex failed to compile"""
    pass


class EmberErrorHandler:
    """Turns pyparsing exceptions into Ember diagnostics for one source text"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def enhance_parse_exception(self, exc: ParseException) -> EmberParseError:
        """Convert pyparsing exception to enhanced Ember error"""
        error_dict = enhance_parse_exception_dict(exc, self.source_text, self.filename)
        return EmberParseError(
            message=error_dict['message'],
            location=error_dict['location'],
            line=error_dict['line'],
            column=error_dict['column'],
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context'],
            suggestions=error_dict['suggestions'],
            filename=error_dict['filename']
        )

    def nesting_too_deep(self) -> EmberParseError:
        """Report input whose nesting exhausted the parser's recursion budget"""
        return EmberParseError(
            message="Input nests too deeply to parse",
            location=0,
            line=1,
            column=1,
            expected=["less deeply nested input"],
            got=extract_got(self.source_text, 0),
            context=get_context_lines(self.source_text, 1, 1),
            suggestions=["Split deeply nested expressions into separate let bindings"],
            filename=self.filename
        )
