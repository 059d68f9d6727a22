"""
String-match compiler for rescue patterns

Atoms joined by ++ (string literals, numbers and identifiers) become one
anchored regex. Literal atoms match their own text exactly, identifiers
capture the shortest run of characters that lets the whole subject match.
"""

from typing import Optional, Sequence, Tuple
from functools import reduce
import logging
import re

from ast_nodes import (
    IdentifierPattern, NumberPattern, Pattern, StringMatchPattern, StringPattern
)
from error_handling import PatternCompileError, UnsupportedPatternAtomError
from rationals import render_decimal

logger = logging.getLogger(__name__)

CAPTURE_ANYTHING = r"(.*?)"


def atom_fragment(atom: Pattern) -> Tuple[str, Optional[str]]:
    """Return the regex fragment for one atom and the name it binds, if any"""
    if isinstance(atom, StringPattern):
        return re.escape(atom.value), None
    if isinstance(atom, NumberPattern):
        return re.escape(render_decimal(atom.value)), None
    if isinstance(atom, IdentifierPattern):
        return CAPTURE_ANYTHING, atom.name
    raise UnsupportedPatternAtomError(
        f"{type(atom).__name__} cannot be used in a ++ string pattern"
    )


def anchor(fragment: str) -> str:
    """Whole-subject match with '.' spanning newlines"""
    return rf"(?s)\A(?:{fragment})\Z"


def compile_string_match(atoms: Sequence[Pattern]) -> StringMatchPattern:
    """Fold atoms left to right into binding names and one compiled matcher"""
    if not atoms:
        raise UnsupportedPatternAtomError("a string pattern needs at least one atom")

    def fold(acc: Tuple[Tuple[str, ...], str], atom: Pattern) -> Tuple[Tuple[str, ...], str]:
        bindings, source = acc
        fragment, name = atom_fragment(atom)
        if name is not None:
            bindings = bindings + (name,)
        return bindings, source + fragment

    bindings, fragment = reduce(fold, atoms, ((), ""))
    source = anchor(fragment)

    try:
        matcher = re.compile(source)
    except re.error as e:
        raise PatternCompileError(f"could not compile string pattern {source!r}: {e}") from e

    logger.debug("compiled string pattern %r binding %s", source, bindings)
    return StringMatchPattern(bindings=bindings, matcher=matcher)
