"""
Tokenizer for spell damage formulas.

Recognizes:
- dice literals: 2d6, d20, 3D8
- the dice operator before a parenthesis: (slot+5)d6, 2d(sides)
- integers, identifiers, double-quoted strings
- operators: + - * / < <= > >= == != ( ) , { } = ..
- '#' comments running to the end of the line
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import SpellSyntaxError


@dataclass(frozen=True)
class Token:
    """A single lexical token."""
    kind: str                       # INT, DICE, DOP, IDENT, STRING, RANGE, OP, EOF
    text: str                       # Raw source text
    line: int                       # 1-based source line
    value: Optional[object] = None  # int for INT, (count, sides) for DICE, str for STRING

    def __str__(self) -> str:
        return 'end of formula' if self.kind == 'EOF' else repr(self.text)


# Order matters: earlier patterns win at the same position
TOKEN_SPEC: List[Tuple[str, str]] = [
    ('NEWLINE', r'\n'),
    ('SKIP', r'[ \t\r]+'),
    ('COMMENT', r'#[^\n]*'),
    ('DICE', r'(?P<count>\d*)[dD](?P<sides>\d+)(?![A-Za-z0-9_.])'),
    ('BADNUM', r'\d+(?:\.(?!\.)\d*|(?![dD]\s*\()[A-Za-z_][A-Za-z0-9_]*)'),
    ('INT', r'\d+'),
    ('DOP', r'[dD](?=\s*\()'),
    ('IDENT', r'[A-Za-z_][A-Za-z0-9_]*'),
    ('STRING', r'"[^"\n]*"'),
    ('BADSTRING', r'"[^"\n]*'),
    ('RANGE', r'\.\.'),
    ('OP', r'<=|>=|==|!=|[-+*/()<>,{}=]'),
    ('MISMATCH', r'.'),
]

TOKEN_PATTERN = re.compile('|'.join(f'(?P<{name}>{pattern})' for name, pattern in TOKEN_SPEC))


def tokenize(text: str, line: int = 1) -> List[Token]:
    """
    Split formula text into tokens.

    Args:
        text: Formula text, possibly spanning several lines
        line: Line number of the first character of text

    Returns:
        List of tokens terminated by an EOF token

    Raises:
        SpellSyntaxError: On unknown characters, malformed numbers or
            unterminated strings
    """
    tokens: List[Token] = []

    for match in TOKEN_PATTERN.finditer(text):
        kind = match.lastgroup
        raw = match.group()

        # lastgroup reports the innermost named group for DICE
        if match.group('DICE') is not None:
            kind = 'DICE'

        if kind == 'NEWLINE':
            line += 1
        elif kind in ('SKIP', 'COMMENT'):
            continue
        elif kind == 'DICE':
            count = match.group('count')
            sides = int(match.group('sides'))
            tokens.append(Token('DICE', raw, line, (int(count) if count else None, sides)))
        elif kind == 'INT':
            tokens.append(Token('INT', raw, line, int(raw)))
        elif kind == 'STRING':
            tokens.append(Token('STRING', raw, line, raw[1:-1]))
        elif kind in ('DOP', 'IDENT', 'RANGE', 'OP'):
            tokens.append(Token(kind, raw, line))
        elif kind == 'BADNUM':
            raise SpellSyntaxError(f"malformed number '{raw}'", line=line)
        elif kind == 'BADSTRING':
            raise SpellSyntaxError("unterminated string", line=line)
        else:
            raise SpellSyntaxError(f"unexpected character '{raw}'", line=line)

    tokens.append(Token('EOF', '', line))
    return tokens


__all__ = ['Token', 'tokenize']
