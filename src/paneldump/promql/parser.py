"""
Recursive-descent PromQL parser.

Produces the syntax tree in ``paneldump.promql.ast`` and checks the rules that
make an expression invalid regardless of the data behind it: syntax, function
names and arity, argument types, range/subquery placement, and binary operand
types. Errors are reported as ``<line>:<col>: parse error: <message>``.
"""

from __future__ import annotations

import math
import re
from typing import List, NoReturn, Optional

from paneldump.promql.ast import (
    AggregateExpr,
    BinaryExpr,
    Call,
    LabelMatcher,
    MatrixSelector,
    Node,
    NumberLiteral,
    ParenExpr,
    StringLiteral,
    SubqueryExpr,
    UnaryExpr,
    ValueType,
    VectorSelector,
)
from paneldump.promql.functions import AGGREGATIONS, FUNCTIONS
from paneldump.promql.lexer import LexError, Token, TokenType, tokenize

METRIC_NAME_LABEL = "__name__"

# binary operator precedence, lowest first
_PRECEDENCE = {
    "or": 1,
    "and": 2,
    "unless": 2,
    "==": 3,
    "!=": 3,
    "<=": 3,
    ">=": 3,
    "<": 3,
    ">": 3,
    "+": 4,
    "-": 4,
    "*": 5,
    "/": 5,
    "%": 5,
    "atan2": 5,
    "^": 6,
}
_COMPARISONS = {"==", "!=", "<=", ">=", "<", ">"}
_SET_OPERATORS = {"and", "or", "unless"}
_KEYWORD_OPERATORS = {"and", "or", "unless", "atan2"}


class ParseError(Exception):
    """An expression that is not valid PromQL."""

    def __init__(self, message: str, pos: int, text: str = "") -> None:
        self.message = message
        self.pos = pos
        line, col = _line_col(text, pos)
        super().__init__(f"{line}:{col}: parse error: {message}")


def parse_expr(text: str) -> Node:
    """Parse a PromQL expression into a syntax tree."""
    try:
        tokens = tokenize(text)
    except LexError as exc:
        raise ParseError(exc.message, exc.pos, text) from exc
    try:
        return _Parser(tokens, text).parse()
    except RecursionError as exc:
        raise ParseError("expression nested too deeply", 0, text) from exc


class _Parser:
    def __init__(self, tokens: List[Token], text: str) -> None:
        self._tokens = tokens
        self._text = text
        self._index = 0

    # token helpers

    @property
    def _tok(self) -> Token:
        return self._tokens[self._index]

    def _peek(self, offset: int = 1) -> Token:
        index = min(self._index + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        tok = self._tok
        if tok.type is not TokenType.EOF:
            self._index += 1
        return tok

    def _expect(self, token_type: TokenType, context: str) -> Token:
        if self._tok.type is not token_type:
            self._fail(f"unexpected {self._tok.describe()} in {context}, expected \"{token_type.value}\"")
        return self._advance()

    def _is_keyword(self, *words: str) -> bool:
        return self._tok.type is TokenType.IDENT and self._tok.value.lower() in words

    def _fail(self, message: str, pos: Optional[int] = None) -> NoReturn:
        raise ParseError(message, self._tok.pos if pos is None else pos, self._text)

    # grammar

    def parse(self) -> Node:
        if self._tok.type is TokenType.EOF:
            self._fail("no expression found in input")
        node = self._expression(0)
        if self._tok.type is not TokenType.EOF:
            self._fail(f"unexpected {self._tok.describe()}")
        return node

    def _binary_operator(self) -> Optional[str]:
        tok = self._tok
        if tok.type is TokenType.OPERATOR and tok.value in _PRECEDENCE:
            return tok.value
        if tok.type is TokenType.IDENT and tok.value.lower() in _KEYWORD_OPERATORS:
            return tok.value.lower()
        return None

    def _expression(self, min_precedence: int) -> Node:
        lhs = self._unary()
        while True:
            op = self._binary_operator()
            if op is None or _PRECEDENCE[op] < min_precedence:
                return lhs
            op_tok = self._advance()
            return_bool = False
            if self._is_keyword("bool"):
                if op not in _COMPARISONS:
                    self._fail("bool modifier can only be used on comparison operators")
                self._advance()
                return_bool = True
            self._vector_matching(op)

            # "^" is right-associative
            next_min = _PRECEDENCE[op] if op == "^" else _PRECEDENCE[op] + 1
            rhs = self._expression(next_min)
            lhs = self._check_binary(BinaryExpr(op_tok.pos, op, lhs, rhs, return_bool))

    def _vector_matching(self, op: str) -> None:
        if self._is_keyword("on", "ignoring"):
            self._advance()
            self._label_list("vector matching")
            if self._is_keyword("group_left", "group_right"):
                if op in _SET_OPERATORS:
                    self._fail("no grouping allowed for \"" + op + "\" operation")
                self._advance()
                if self._tok.type is TokenType.LEFT_PAREN:
                    self._label_list("grouping modifier")

    def _check_binary(self, node: BinaryExpr) -> BinaryExpr:
        for side in (node.lhs, node.rhs):
            if side.type not in (ValueType.SCALAR, ValueType.VECTOR):
                self._fail("binary expression must contain only scalar and instant vector types", node.pos)
        both_scalar = node.lhs.type is ValueType.SCALAR and node.rhs.type is ValueType.SCALAR
        if node.op in _COMPARISONS and both_scalar and not node.return_bool:
            self._fail("comparisons between scalars must use BOOL modifier", node.pos)
        if node.op in _SET_OPERATORS and (
            node.lhs.type is ValueType.SCALAR or node.rhs.type is ValueType.SCALAR
        ):
            self._fail(f'set operator "{node.op}" not allowed in binary scalar expression', node.pos)
        return node

    def _unary(self) -> Node:
        tok = self._tok
        if tok.type is TokenType.OPERATOR and tok.value in ("+", "-"):
            self._advance()
            operand = self._unary()
            if operand.type not in (ValueType.SCALAR, ValueType.VECTOR):
                self._fail("unary expression only allowed on expressions of type scalar or instant vector", tok.pos)
            if isinstance(operand, NumberLiteral):
                sign = -1.0 if tok.value == "-" else 1.0
                return NumberLiteral(tok.pos, sign * operand.value)
            return UnaryExpr(tok.pos, tok.value, operand)
        return self._postfix(self._primary())

    def _postfix(self, node: Node) -> Node:
        # modifiers already applied to the current node
        modifiers: set[str] = set()
        while True:
            if self._tok.type is TokenType.LEFT_BRACKET:
                if modifiers and isinstance(node, VectorSelector) and not self._is_subquery():
                    first = "offset" if "offset" in modifiers else "@"
                    self._fail(f"no {first} modifiers allowed before range")
                node = self._range_or_subquery(node)
                modifiers = set()
            elif self._is_keyword("offset"):
                self._check_modifier(node, modifiers, "offset")
                self._advance()
                if self._tok.type is TokenType.OPERATOR and self._tok.value in ("+", "-"):
                    self._advance()
                self._expect(TokenType.DURATION, "offset")
            elif self._tok.type is TokenType.AT:
                self._check_modifier(node, modifiers, "@")
                self._advance()
                self._at_modifier()
            else:
                return node

    def _check_modifier(self, node: Node, modifiers: set[str], modifier: str) -> None:
        if not isinstance(node, (VectorSelector, MatrixSelector, SubqueryExpr)):
            self._fail(
                f"{modifier} modifier must be preceded by an instant vector selector "
                "or range vector selector or a subquery"
            )
        if modifier in modifiers:
            label = "offset" if modifier == "offset" else "@ <timestamp>"
            self._fail(f"{label} may not be set multiple times")
        modifiers.add(modifier)

    def _is_subquery(self) -> bool:
        # "[" duration ":" starts a subquery rather than a range
        return self._peek(2).type is TokenType.COLON

    def _range_or_subquery(self, node: Node) -> Node:
        start = self._advance()
        range_ = self._expect(TokenType.DURATION, "range").value
        if self._tok.type is TokenType.COLON:
            self._advance()
            step = None
            if self._tok.type is TokenType.DURATION:
                step = self._advance().value
            self._expect(TokenType.RIGHT_BRACKET, "subquery selector")
            if node.type is not ValueType.VECTOR:
                self._fail(f"subquery is only allowed on instant vector, got {node.type.value}", start.pos)
            return SubqueryExpr(node.pos, node, range_, step)

        self._expect(TokenType.RIGHT_BRACKET, "matrix selector")
        if not isinstance(node, VectorSelector):
            self._fail("ranges only allowed for vector selectors", start.pos)
        return MatrixSelector(node.pos, node, range_)

    def _at_modifier(self) -> None:
        tok = self._tok
        if tok.type is TokenType.NUMBER:
            self._advance()
            return
        if tok.type is TokenType.OPERATOR and tok.value in ("+", "-"):
            self._advance()
            self._expect(TokenType.NUMBER, "@ modifier")
            return
        if self._is_keyword("start", "end"):
            self._advance()
            self._expect(TokenType.LEFT_PAREN, "@ modifier")
            self._expect(TokenType.RIGHT_PAREN, "@ modifier")
            return
        self._fail(f"unexpected {tok.describe()} in @, expected timestamp")

    def _primary(self) -> Node:
        tok = self._tok
        if tok.type in (TokenType.NUMBER, TokenType.DURATION):
            self._advance()
            return NumberLiteral(tok.pos, _number_value(tok.value))
        if tok.type is TokenType.STRING:
            self._advance()
            return StringLiteral(tok.pos, tok.value)
        if tok.type is TokenType.LEFT_PAREN:
            self._advance()
            inner = self._expression(0)
            self._expect(TokenType.RIGHT_PAREN, "paren expression")
            return ParenExpr(tok.pos, inner)
        if tok.type is TokenType.LEFT_BRACE:
            return self._vector_selector(tok.pos, "")
        if tok.type is TokenType.IDENT:
            return self._identifier()
        self._fail(f"unexpected {tok.describe()}")

    def _identifier(self) -> Node:
        tok = self._tok
        lowered = tok.value.lower()
        nxt = self._peek()

        if lowered in AGGREGATIONS and (
            nxt.type is TokenType.LEFT_PAREN
            or (nxt.type is TokenType.IDENT and nxt.value.lower() in ("by", "without"))
        ):
            return self._aggregation()
        if nxt.type is TokenType.LEFT_PAREN:
            return self._call()
        if lowered in ("inf", "nan"):
            self._advance()
            return NumberLiteral(tok.pos, math.inf if lowered == "inf" else math.nan)
        if lowered in _KEYWORD_OPERATORS or lowered in ("by", "without", "on", "ignoring", "bool", "offset"):
            self._fail(f"unexpected {tok.describe()}")

        self._advance()
        return self._vector_selector(tok.pos, tok.value)

    def _vector_selector(self, pos: int, name: str) -> VectorSelector:
        matchers: List[LabelMatcher] = []
        if self._tok.type is TokenType.LEFT_BRACE:
            self._advance()
            while self._tok.type is not TokenType.RIGHT_BRACE:
                matchers.append(self._matcher(name))
                if self._tok.type is TokenType.COMMA:
                    self._advance()
                elif self._tok.type is not TokenType.RIGHT_BRACE:
                    self._fail(f"unexpected {self._tok.describe()} in label matching, expected \",\" or \"}}\"")
            self._advance()

        for matcher in matchers:
            if matcher.name == METRIC_NAME_LABEL and name:
                self._fail(f"metric name must not be set twice: \"{name}\" or \"{matcher.value}\"", pos)

        if not name and not any(_matches_non_empty(m) for m in matchers):
            self._fail("vector selector must contain at least one non-empty matcher", pos)
        return VectorSelector(pos, name, matchers)

    def _matcher(self, selector_name: str) -> LabelMatcher:
        tok = self._tok
        if tok.type is TokenType.STRING and self._peek().type in (TokenType.COMMA, TokenType.RIGHT_BRACE):
            # quoted metric name inside braces: {"my.metric", job="x"}
            self._advance()
            if selector_name:
                self._fail("metric name must not be set twice", tok.pos)
            return LabelMatcher(METRIC_NAME_LABEL, "=", tok.value)
        if tok.type not in (TokenType.IDENT, TokenType.STRING):
            self._fail(f"unexpected {tok.describe()} in label matching, expected label matching operator")
        label = self._advance().value
        if self._tok.type is not TokenType.MATCH_OP:
            self._fail(f"unexpected {self._tok.describe()} in label matching, expected label matching operator")
        op = self._advance().value
        value = self._expect(TokenType.STRING, "label matching").value
        return LabelMatcher(label, op, value)

    def _label_list(self, context: str) -> List[str]:
        self._expect(TokenType.LEFT_PAREN, context)
        labels: List[str] = []
        while self._tok.type is not TokenType.RIGHT_PAREN:
            if self._tok.type not in (TokenType.IDENT, TokenType.STRING):
                self._fail(f"unexpected {self._tok.describe()} in {context}, expected label")
            labels.append(self._advance().value)
            if self._tok.type is TokenType.COMMA:
                self._advance()
            elif self._tok.type is not TokenType.RIGHT_PAREN:
                self._fail(f"unexpected {self._tok.describe()} in {context}, expected \",\" or \")\"")
        self._advance()
        return labels

    def _grouping(self) -> tuple[List[str], bool] | None:
        if not self._is_keyword("by", "without"):
            return None
        without = self._advance().value.lower() == "without"
        return self._label_list("grouping opts"), without

    def _aggregation(self) -> AggregateExpr:
        op_tok = self._advance()
        op = op_tok.value.lower()
        grouping = self._grouping()

        self._expect(TokenType.LEFT_PAREN, "aggregation")
        args: List[Node] = []
        while self._tok.type is not TokenType.RIGHT_PAREN:
            args.append(self._expression(0))
            if self._tok.type is TokenType.COMMA:
                self._advance()
            elif self._tok.type is not TokenType.RIGHT_PAREN:
                self._fail(f"unexpected {self._tok.describe()} in aggregation, expected \",\" or \")\"")
        self._advance()

        trailing = self._grouping()
        if grouping is not None and trailing is not None:
            self._fail("aggregation must only contain one grouping clause", op_tok.pos)
        labels, without = grouping or trailing or ([], False)

        param_type = AGGREGATIONS[op]
        expected = 2 if param_type is not None else 1
        if len(args) != expected:
            self._fail(f"wrong number of arguments for aggregate expression provided, expected {expected}, got {len(args)}", op_tok.pos)

        param = args[0] if param_type is not None else None
        expr = args[-1]
        if param is not None and param.type is not param_type:
            self._fail(f"expected type {param_type.value} in aggregation parameter, got {param.type.value}", param.pos)
        if expr.type is not ValueType.VECTOR:
            self._fail(f"expected type instant vector in aggregation expression, got {expr.type.value}", expr.pos)
        return AggregateExpr(op_tok.pos, op, expr, param, labels, without)

    def _call(self) -> Call:
        name_tok = self._advance()
        func = FUNCTIONS.get(name_tok.value)
        if func is None:
            self._fail(f'unknown function with name "{name_tok.value}"', name_tok.pos)

        self._expect(TokenType.LEFT_PAREN, "function call")
        args: List[Node] = []
        while self._tok.type is not TokenType.RIGHT_PAREN:
            args.append(self._expression(0))
            if self._tok.type is TokenType.COMMA:
                self._advance()
            elif self._tok.type is not TokenType.RIGHT_PAREN:
                self._fail(f"unexpected {self._tok.describe()} in function call, expected \",\" or \")\"")
        self._advance()

        if len(args) < func.min_args:
            self._fail(
                f'expected at least {func.min_args} argument(s) in call to "{func.name}", got {len(args)}',
                name_tok.pos,
            )
        if func.max_args is not None and len(args) > func.max_args:
            self._fail(
                f'expected at most {func.max_args} argument(s) in call to "{func.name}", got {len(args)}',
                name_tok.pos,
            )
        for index, arg in enumerate(args):
            expected = func.arg_type(index)
            if arg.type is not expected:
                self._fail(
                    f'expected type {expected.value} in call to function "{func.name}", got {arg.type.value}',
                    arg.pos,
                )
        return Call(name_tok.pos, func.name, args, func.return_type)


def _matches_non_empty(matcher: LabelMatcher) -> bool:
    # {job=""} or {job=~".*"} would select every series
    if matcher.op == "=":
        return matcher.value != ""
    if matcher.op == "=~":
        return matcher.value not in ("", ".*")
    return False


_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800, "y": 31536000}


def _number_value(raw: str) -> float:
    if raw.lower().startswith("0x"):
        return float(int(raw, 16))
    try:
        return float(raw)
    except ValueError:
        # durations used as numbers count seconds
        return sum(
            int(amount) * _DURATION_UNITS[unit]
            for amount, unit in re.findall(r"(\d+)(ms|[smhdwy])", raw)
        )


def _line_col(text: str, pos: int) -> tuple[int, int]:
    line = text.count("\n", 0, pos) + 1
    last_newline = text.rfind("\n", 0, pos)
    return line, pos - last_newline
