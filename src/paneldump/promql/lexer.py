"""Tokenizer for PromQL expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List


class TokenType(Enum):
    IDENT = "identifier"
    NUMBER = "number"
    DURATION = "duration"
    STRING = "string"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"
    COMMA = ","
    COLON = ":"
    AT = "@"
    OPERATOR = "operator"
    MATCH_OP = "matcher"
    EOF = "end of input"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    pos: int

    def describe(self) -> str:
        if self.type is TokenType.EOF:
            return "end of input"
        if self.type in (TokenType.IDENT, TokenType.NUMBER, TokenType.DURATION, TokenType.STRING):
            return f'{self.type.value} "{self.value}"'
        return f'"{self.value}"'


class LexError(Exception):
    def __init__(self, message: str, pos: int) -> None:
        super().__init__(message)
        self.message = message
        self.pos = pos


_DURATION = re.compile(r"(?:\d+(?:ms|[smhdwy]))+(?![\w.])")
_NUMBER = re.compile(r"0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_IDENT = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

# longest first
_OPERATORS = ("==", "!=", "<=", ">=", "=~", "!~", "+", "-", "*", "/", "%", "^", "<", ">", "=")
_MATCH_OPS = {"=", "!=", "=~", "!~"}
_PUNCT = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    ",": TokenType.COMMA,
    "@": TokenType.AT,
}


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens, ending with an EOF token."""
    tokens: List[Token] = []
    pos = 0
    brace_depth = 0
    bracket_depth = 0
    length = len(text)

    while pos < length:
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        if ch == "#":
            newline = text.find("\n", pos)
            pos = length if newline == -1 else newline + 1
            continue

        if ch in "\"'`":
            end = _scan_string(text, pos)
            tokens.append(Token(TokenType.STRING, _unquote(text[pos:end]), pos))
            pos = end
            continue

        if ch == ":" and bracket_depth > 0:
            tokens.append(Token(TokenType.COLON, ":", pos))
            pos += 1
            continue

        if ch in _PUNCT:
            token_type = _PUNCT[ch]
            if token_type is TokenType.LEFT_BRACE:
                brace_depth += 1
            elif token_type is TokenType.RIGHT_BRACE:
                brace_depth -= 1
            elif token_type is TokenType.LEFT_BRACKET:
                bracket_depth += 1
            elif token_type is TokenType.RIGHT_BRACKET:
                bracket_depth -= 1
            if brace_depth < 0:
                raise LexError("unexpected right brace '}'", pos)
            if bracket_depth < 0:
                raise LexError("unexpected right bracket ']'", pos)
            tokens.append(Token(token_type, ch, pos))
            pos += 1
            continue

        if ch.isdigit() or (ch == "." and pos + 1 < length and text[pos + 1].isdigit()):
            match = _DURATION.match(text, pos)
            if match:
                tokens.append(Token(TokenType.DURATION, match.group(0), pos))
                pos = match.end()
                continue
            match = _NUMBER.match(text, pos)
            if match:
                tokens.append(Token(TokenType.NUMBER, match.group(0), pos))
                pos = match.end()
                continue

        ident_re = _LABEL_IDENT if brace_depth > 0 else _IDENT
        match = ident_re.match(text, pos)
        if match:
            tokens.append(Token(TokenType.IDENT, match.group(0), pos))
            pos = match.end()
            continue

        for op in _OPERATORS:
            if text.startswith(op, pos):
                token_type = TokenType.MATCH_OP if brace_depth > 0 and op in _MATCH_OPS else TokenType.OPERATOR
                tokens.append(Token(token_type, op, pos))
                pos += len(op)
                break
        else:
            raise LexError(f"unexpected character: {ch!r}", pos)

    if brace_depth > 0:
        raise LexError("unclosed left brace", length)
    if bracket_depth > 0:
        raise LexError("unclosed left bracket", length)

    tokens.append(Token(TokenType.EOF, "", length))
    return tokens


def _scan_string(text: str, start: int) -> int:
    quote = text[start]
    pos = start + 1
    while pos < len(text):
        ch = text[pos]
        if ch == "\\" and quote != "`":
            pos += 2
            continue
        if ch == quote:
            return pos + 1
        if ch == "\n" and quote != "`":
            break
        pos += 1
    raise LexError("unterminated quoted string", start)


def _unquote(raw: str) -> str:
    quote, body = raw[0], raw[1:-1]
    if quote == "`":
        return body
    return re.sub(r"\\(.)", lambda m: {"n": "\n", "t": "\t"}.get(m.group(1), m.group(1)), body)
