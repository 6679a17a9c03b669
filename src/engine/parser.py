"""
Parser for spell collections.

A collection is plain text, one spell block per header line:

    # Evocation
    Fire Bolt: (1 + (level >= 5) + (level >= 11) + (level >= 17))d10
    Fireball [3]: (5 + slot)d6
    Magic Missile [1]: repeat(2 + slot, 1d4 + 1)
    Eldritch Blast:
        repeat(1 + (level >= 5) + (level >= 11) + (level >= 17), 1d10 + cha)

A header starts in column 0 and reads `Name [level]: formula`; the level is
optional. Indented lines continue the formula of the block above them.
'#' starts a comment. A syntax error discards only the block it occurs in.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import SpellSyntaxError
from .expressions import (
    Aggregate, BinaryOp, COMPARISON_OPERATORS, Dice, Node, Number, Parameter,
    ParameterDeclaration, Repeat, UnaryOp,
)
from .lexer import Token, tokenize

logger = logging.getLogger(__name__)

# name -> (minimum arity, maximum arity or None for variadic)
FUNCTIONS: Dict[str, Tuple[int, Optional[int]]] = {
    'max': (2, None),
    'min': (2, None),
    'adv': (1, 1),
    'dis': (1, 1),
    'repeat': (2, 2),
}

PARAMETER_KINDS = ('stepper', 'slider')

HEADER_PATTERN = re.compile(
    r'^(?P<name>[^\[\]:#]+?)\s*(?:\[(?P<level>[^\]]*)\])?\s*:(?P<formula>.*)$'
)


@dataclass(frozen=True)
class SpellDefinition:
    """One parsed spell block."""
    name: str
    level: Optional[int]   # Declared minimum casting level; None if level-independent
    expression: Node
    line: int              # Line of the block header

    @property
    def formula(self) -> str:
        """Canonical formula text."""
        return str(self.expression)


@dataclass
class ParsedDocument:
    """Every spell that parsed, plus one error per rejected block."""
    spells: List[SpellDefinition] = field(default_factory=list)
    errors: List[SpellSyntaxError] = field(default_factory=list)


@dataclass
class _Block:
    line: int
    header: str
    body: List[str] = field(default_factory=list)
    orphan: bool = False


class FormulaParser:
    """
    Recursive-descent parser for a single damage formula.

    Precedence, loosest first: comparison, + -, * /, unary minus, dice.
    """

    def __init__(self, text: str, line: int = 1):
        self.tokens = tokenize(text, line)
        self.pos = 0

    # ---- token helpers ----

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != 'EOF':
            self.pos += 1
        return token

    def _check(self, kind: str, text: Optional[str] = None) -> bool:
        token = self._peek()
        return token.kind == kind and (text is None or token.text == text)

    def _accept(self, kind: str, text: Optional[str] = None) -> Optional[Token]:
        if self._check(kind, text):
            return self._advance()
        return None

    def _expect(self, kind: str, text: Optional[str] = None, what: Optional[str] = None) -> Token:
        if self._check(kind, text):
            return self._advance()
        token = self._peek()
        raise SpellSyntaxError(f"expected {what or repr(text)}, got {token}", line=token.line)

    def _unexpected(self) -> SpellSyntaxError:
        token = self._peek()
        if token.kind == 'EOF':
            return SpellSyntaxError("unexpected end of formula", line=token.line)
        return SpellSyntaxError(f"unexpected {token}", line=token.line)

    # ---- grammar ----

    def parse(self) -> Node:
        if self._check('EOF'):
            raise SpellSyntaxError("missing damage formula", line=self._peek().line)
        node = self._parse_comparison()
        if not self._check('EOF'):
            raise self._unexpected()
        return node

    def _parse_comparison(self) -> Node:
        node = self._parse_additive()
        token = self._peek()
        if token.kind == 'OP' and token.text in COMPARISON_OPERATORS:
            self._advance()
            node = BinaryOp(token.text, node, self._parse_additive())
            following = self._peek()
            if following.kind == 'OP' and following.text in COMPARISON_OPERATORS:
                raise SpellSyntaxError("comparisons cannot be chained", line=following.line)
        return node

    def _parse_additive(self) -> Node:
        node = self._parse_term()
        while self._check('OP', '+') or self._check('OP', '-'):
            op = self._advance().text
            node = BinaryOp(op, node, self._parse_term())
        return node

    def _parse_term(self) -> Node:
        node = self._parse_unary()
        while self._check('OP', '*') or self._check('OP', '/'):
            op = self._advance().text
            node = BinaryOp(op, node, self._parse_unary())
        return node

    def _parse_unary(self) -> Node:
        if self._accept('OP', '-'):
            return UnaryOp(self._parse_unary())
        return self._parse_dice()

    def _parse_dice(self) -> Node:
        token = self._peek()
        if token.kind == 'DICE':
            self._advance()
            count, sides = token.value
            node = Dice(Number(1 if count is None else count), Number(sides))
        elif token.kind == 'DOP':
            self._advance()
            node = Dice(Number(1), self._parse_primary())
        else:
            node = self._parse_primary()

        # A count-less die or a 'd' operator after an operand uses it as the count
        while True:
            token = self._peek()
            if token.kind == 'DICE' and token.value[0] is None:
                self._advance()
                node = Dice(node, Number(token.value[1]))
            elif token.kind == 'DOP':
                self._advance()
                node = Dice(node, self._parse_primary())
            else:
                return node

    def _parse_primary(self) -> Node:
        token = self._peek()

        if token.kind == 'INT':
            self._advance()
            return Number(token.value)

        if token.kind == 'IDENT':
            self._advance()
            if self._check('OP', '('):
                return self._parse_call(token)
            if token.text in FUNCTIONS:
                raise SpellSyntaxError(
                    f"'{token.text}' is a function and must be called like {token.text}(...)",
                    line=token.line
                )
            declaration = self._parse_declaration() if self._check('OP', '{') else None
            return Parameter(token.text, declaration, line=token.line)

        if self._accept('OP', '('):
            node = self._parse_comparison()
            self._expect('OP', ')')
            return node

        raise self._unexpected()

    def _parse_call(self, name: Token) -> Node:
        if name.text not in FUNCTIONS:
            raise SpellSyntaxError(f"unknown function '{name.text}'", line=name.line)

        self._expect('OP', '(')
        args: List[Node] = []
        if not self._check('OP', ')'):
            args.append(self._parse_comparison())
            while self._accept('OP', ','):
                args.append(self._parse_comparison())
        self._expect('OP', ')')

        low, high = FUNCTIONS[name.text]
        if len(args) < low or (high is not None and len(args) > high):
            if high is None:
                expected = f"at least {low}"
            elif low == high:
                expected = str(low)
            else:
                expected = f"{low} to {high}"
            raise SpellSyntaxError(
                f"{name.text}() takes {expected} argument{'s' if expected != '1' else ''}, got {len(args)}",
                line=name.line
            )

        if name.text == 'adv':
            return Aggregate('max', (args[0], args[0]))
        if name.text == 'dis':
            return Aggregate('min', (args[0], args[0]))
        if name.text == 'repeat':
            return Repeat(args[0], args[1])
        return Aggregate(name.text, tuple(args))

    def _parse_signed_int(self) -> int:
        negative = self._accept('OP', '-') is not None
        token = self._expect('INT', what='an integer')
        return -token.value if negative else token.value

    def _parse_declaration(self) -> ParameterDeclaration:
        opening = self._expect('OP', '{')
        values: Dict[str, object] = {}

        def put(key: str, value: object, line: int) -> None:
            if key in values:
                raise SpellSyntaxError(f"'{key}' given twice in parameter declaration", line=line)
            values[key] = value

        if not self._check('OP', '}'):
            while True:
                token = self._peek()
                if token.kind == 'INT' or self._check('OP', '-'):
                    put('minimum', self._parse_signed_int(), token.line)
                    self._expect('RANGE', what="'..'")
                    put('maximum', self._parse_signed_int(), token.line)
                elif token.kind == 'IDENT':
                    self._advance()
                    self._expect('OP', '=')
                    self._parse_declaration_field(token, put)
                else:
                    raise self._unexpected()
                if not self._accept('OP', ','):
                    break
        self._expect('OP', '}')

        declaration = ParameterDeclaration(**values)
        _validate_declaration(declaration, opening.line)
        return declaration

    def _parse_declaration_field(self, key: Token, put) -> None:
        if key.text in ('min', 'max', 'step', 'default'):
            attribute = {'min': 'minimum', 'max': 'maximum'}.get(key.text, key.text)
            put(attribute, self._parse_signed_int(), key.line)
        elif key.text == 'kind':
            kind = self._expect('IDENT', what="'slider' or 'stepper'")
            if kind.text not in PARAMETER_KINDS:
                raise SpellSyntaxError(
                    f"parameter kind must be 'slider' or 'stepper', got '{kind.text}'",
                    line=kind.line
                )
            put('kind', kind.text, key.line)
        elif key.text in ('label', 'group'):
            put(key.text, self._expect('STRING', what='a quoted string').value, key.line)
        else:
            raise SpellSyntaxError(f"unknown parameter attribute '{key.text}'", line=key.line)


def _validate_declaration(declaration: ParameterDeclaration, line: int) -> None:
    low, high = declaration.minimum, declaration.maximum
    if low is not None and high is not None and low > high:
        raise SpellSyntaxError(f"parameter minimum {low} is greater than maximum {high}", line=line)
    if declaration.step is not None and declaration.step < 1:
        raise SpellSyntaxError(f"parameter step must be positive, got {declaration.step}", line=line)
    default = declaration.default
    if default is not None:
        if (low is not None and default < low) or (high is not None and default > high):
            raise SpellSyntaxError(f"parameter default {default} is outside {low}..{high}", line=line)


def parse_expression(text: str, line: int = 1) -> Node:
    """
    Parse one formula.

    Raises:
        SpellSyntaxError: If the formula is malformed
    """
    return FormulaParser(text, line).parse()


def _split_blocks(text: str) -> Iterator[_Block]:
    current: Optional[_Block] = None
    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith('#'):
            # Keep line numbering intact inside multi-line formulas
            if current is not None:
                current.body.append('')
            continue
        if raw[0] in ' \t':
            if current is None:
                current = _Block(number, '', orphan=True)
            current.body.append(raw)
            continue
        if current is not None:
            yield current
        current = _Block(number, raw)
    if current is not None:
        yield current


def _parse_header(block: _Block) -> Tuple[str, Optional[int], str]:
    header = block.header.rstrip()
    if header[0] in '[:':
        raise SpellSyntaxError("missing spell name", line=block.line)

    match = HEADER_PATTERN.match(header)
    if not match:
        if ':' not in header:
            raise SpellSyntaxError("expected ':' after spell name", line=block.line)
        raise SpellSyntaxError("malformed spell header", line=block.line)

    name = match.group('name').strip()
    level = None
    level_text = match.group('level')
    if level_text is not None:
        level_text = level_text.strip()
        if not re.fullmatch(r'-?\d+', level_text) or int(level_text) < 1:
            raise SpellSyntaxError(
                f"level must be a positive integer, got '{level_text}'",
                line=block.line, spell=name
            )
        level = int(level_text)
    return name, level, match.group('formula')


def _parse_block(block: _Block) -> SpellDefinition:
    if block.orphan:
        raise SpellSyntaxError("indented line does not belong to any spell", line=block.line)

    name, level, formula = _parse_header(block)
    text = '\n'.join([formula] + block.body)
    try:
        expression = parse_expression(text, block.line)
    except SpellSyntaxError as e:
        e.spell = name
        raise
    return SpellDefinition(name=name, level=level, expression=expression, line=block.line)


def parse_document(text: str) -> ParsedDocument:
    """
    Parse a whole spell collection.

    Never raises for malformed input: each bad block contributes one
    SpellSyntaxError and the remaining blocks are still parsed.

    Args:
        text: Collection source text

    Returns:
        ParsedDocument with spells in source order and collected errors
    """
    document = ParsedDocument()
    first_seen: Dict[str, int] = {}

    for block in _split_blocks(text):
        try:
            spell = _parse_block(block)
        except SpellSyntaxError as e:
            document.errors.append(e)
            continue

        if spell.name in first_seen:
            document.errors.append(SpellSyntaxError(
                f"duplicate spell name (first defined on line {first_seen[spell.name]})",
                line=spell.line, spell=spell.name
            ))
            continue

        first_seen[spell.name] = spell.line
        document.spells.append(spell)

    logger.debug(f"Parsed {len(document.spells)} spells with {len(document.errors)} errors")
    return document


__all__ = [
    'SpellDefinition', 'ParsedDocument', 'FormulaParser', 'FUNCTIONS',
    'parse_expression', 'parse_document',
]
