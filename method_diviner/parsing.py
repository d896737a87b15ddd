"""
Java method indexing: signatures, line ranges and bodies of every method
declared in a source file, plus the id and body normalization rules shared
by the history miner and the dataset builder.
"""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from javalang.parser import Parser
from javalang.tokenizer import Identifier, tokenize
from javalang.tree import BasicType, MethodDeclaration, ReferenceType

MODIFIERS = {
    'public', 'protected', 'private', 'static', 'abstract', 'final', 'native',
    'synchronized', 'transient', 'volatile', 'strictfp', 'default',
}

BLOCK_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
LINE_COMMENT = re.compile(r'//[^\n]*')
WHITESPACE = re.compile(r'\s+')
PUNCT_SPACING = re.compile(r'\s*([{}();=+\-*/])\s*')


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_method_id(raw_id: str) -> str:
    """Remove all whitespace so ids built on both sides of the join agree"""
    return WHITESPACE.sub('', raw_id)


def method_id(path: str, signature: str) -> str:
    """Normalized id: '<file basename>#<signature>' without whitespace"""
    basename = PurePosixPath(path.replace('\\', '/')).name
    return normalize_method_id(f'{basename}#{signature}')


def normalize_body(body: str) -> str:
    """
    Canonical form of a method body for buggy detection.

    Comments are dropped, whitespace runs collapse to one space and spaces
    around braces, parentheses and simple operators disappear, so bodies
    that differ only in comments or layout compare equal.
    """
    if not body:
        return ''
    text = BLOCK_COMMENT.sub('', body)
    text = LINE_COMMENT.sub('', text)
    text = WHITESPACE.sub(' ', text).strip()
    return PUNCT_SPACING.sub(r'\1', text)


# =============================================================================
# METHOD INDEX
# =============================================================================

@dataclass
class MethodRevision:
    """One method as it appears in one revision of a file"""
    signature: str
    begin: int  # 1-based, inclusive
    end: int    # 1-based, inclusive
    body: str
    node: object = field(default=None, repr=False, compare=False)

    def contains_edit(self, new_begin: int, new_end: int) -> bool:
        return new_begin <= self.end and new_end >= self.begin


@dataclass
class MethodIndex:
    """Methods of a compilation unit in declaration order; error is set on parse failure"""
    methods: list[MethodRevision] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def find(self, signature: str) -> MethodRevision | None:
        """First method declared with exactly this signature"""
        for m in self.methods:
            if m.signature == signature:
                return m
        return None

    def __len__(self):
        return len(self.methods)

    def __iter__(self):
        return iter(self.methods)


def type_to_string(t) -> str:
    """Render a javalang type the way a Java declaration spells it"""
    if t is None:
        return 'void'
    dims = '[]' * len(t.dimensions or [])
    if isinstance(t, BasicType):
        return t.name + dims
    if isinstance(t, ReferenceType):
        text = t.name
        if t.arguments:
            text += '<' + ', '.join(_type_argument(a) for a in t.arguments) + '>'
        if t.sub_type is not None:
            text += '.' + type_to_string(t.sub_type)
        return text + dims
    return str(getattr(t, 'name', t)) + dims


def _type_argument(arg) -> str:
    if arg.type is None:
        return '?'
    if arg.pattern_type in ('extends', 'super'):
        return f'? {arg.pattern_type} {type_to_string(arg.type)}'
    return type_to_string(arg.type)


def method_signature(node: MethodDeclaration) -> str:
    """'ReturnType name(ParamType, ...)' without modifiers, throws or parameter names"""
    params = []
    for p in node.parameters:
        text = type_to_string(p.type)
        if p.varargs:
            text += '...'
        params.append(text)
    return f"{type_to_string(node.return_type)} {node.name}({', '.join(params)})"


def index_methods(source: str) -> MethodIndex:
    """
    Parse one Java file and list its method declarations.

    Never raises: a file that cannot be tokenized or parsed yields an empty
    index carrying the error message.
    """
    if not source or not source.strip():
        return MethodIndex()
    try:
        tokens = list(tokenize(source))
        tree = Parser(tokens).parse_compilation_unit()
    except Exception as e:
        return MethodIndex(error=f'{type(e).__name__}: {e}')

    locator = _SourceLocator(source, tokens)
    methods = []
    for _, node in tree.filter(MethodDeclaration):
        span = locator.span(node)
        if span is None:
            continue
        begin, end, body = span
        methods.append(MethodRevision(method_signature(node), begin, end, body, node))
    return MethodIndex(methods)


class _SourceLocator:
    """Maps declaration positions to line ranges and body text using the token stream"""

    def __init__(self, source: str, tokens: list):
        self.source = source
        self.lines = source.split('\n')
        self.tokens = tokens
        self.by_position = {_pos(t): i for i, t in enumerate(tokens)}
        self.line_offsets = [0]
        for line in self.lines:
            self.line_offsets.append(self.line_offsets[-1] + len(line) + 1)

    def span(self, node):
        if node.position is None:
            return None
        idx = self.by_position.get(_pos(node))
        if idx is None:
            return None
        start = self._declaration_start(idx)
        open_idx = self._header_end(idx)
        if open_idx is None:
            return None
        begin = _pos(self.tokens[start])[0]
        if self.tokens[open_idx].value == ';':
            # abstract or interface method: no body
            return begin, _pos(self.tokens[open_idx])[0], ''
        close_idx = self._matching_brace(open_idx)
        if close_idx is None:
            return None
        end = _pos(self.tokens[close_idx])[0]
        return begin, end, self._text_between(open_idx, close_idx)

    def _declaration_start(self, idx: int) -> int:
        """Walk back over modifiers and annotations preceding the declaration"""
        i = idx
        while i > 0:
            if self.tokens[i - 1].value in MODIFIERS:
                i -= 1
                continue
            j = self._annotation_start(i)
            if j is None:
                break
            i = j
        return i

    def _annotation_start(self, end: int) -> int | None:
        k = end - 1
        if self.tokens[k].value == ')':
            depth = 0
            while k >= 0:
                v = self.tokens[k].value
                if v == ')':
                    depth += 1
                elif v == '(':
                    depth -= 1
                    if depth == 0:
                        break
                k -= 1
            k -= 1
        if k < 0 or not isinstance(self.tokens[k], Identifier):
            return None
        k -= 1
        while k >= 1 and self.tokens[k].value == '.' and isinstance(self.tokens[k - 1], Identifier):
            k -= 2
        if k >= 0 and self.tokens[k].value == '@':
            return k
        return None

    def _header_end(self, idx: int) -> int | None:
        """Index of the '{' opening the body, or of the ';' ending a bodiless declaration"""
        depth = 0
        for i in range(idx, len(self.tokens)):
            v = self.tokens[i].value
            if v == '(':
                depth += 1
            elif v == ')':
                depth -= 1
            elif depth == 0 and v in ('{', ';'):
                return i
        return None

    def _matching_brace(self, open_idx: int) -> int | None:
        depth = 0
        for i in range(open_idx, len(self.tokens)):
            v = self.tokens[i].value
            if v == '{':
                depth += 1
            elif v == '}':
                depth -= 1
                if depth == 0:
                    return i
        return None

    def _offset(self, token) -> int | None:
        line, col = _pos(token)
        guess = self.line_offsets[line - 1] + col - 1
        for candidate in (guess, guess + 1, guess - 1):
            if 0 <= candidate < len(self.source) and self.source.startswith(token.value, candidate):
                return candidate
        return None

    def _text_between(self, open_idx: int, close_idx: int) -> str:
        first, last = self.tokens[open_idx], self.tokens[close_idx]
        a, b = self._offset(first), self._offset(last)
        if a is None or b is None:
            # fall back to whole lines
            return '\n'.join(self.lines[_pos(first)[0] - 1:_pos(last)[0]])
        return self.source[a:b + 1]


def _pos(obj) -> tuple[int, int]:
    position = obj.position
    return position[0], position[1]
