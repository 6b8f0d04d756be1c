"""Small expression language for validation tags and expression conditions.

Expressions use Python syntax plus ``&&``, ``||`` and ``!``. ``$`` names the
value being validated; other names, including dotted ones such as
``server.port``, are looked up through a resolver. Only literals, arithmetic,
comparisons, boolean logic and a few builtin calls are accepted.
"""

import ast
import operator
import re
from typing import Any, Callable, Dict, Optional

from spring_ioc.domain import ExpressionError

MISSING = object()

NameResolver = Callable[[str], Any]

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}

_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "int": int,
    "float": float,
    "str": str,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "lower": lambda s: str(s).lower(),
    "upper": lambda s: str(s).upper(),
    "matches": lambda s, pattern: re.fullmatch(pattern, str(s)) is not None,
}

_CONSTANTS = {"true": True, "false": False, "nil": None, "True": True, "False": False, "None": None}

_VALUE_NAME = "__value__"


def evaluate(expression: str, value: Any = None, resolver: Optional[NameResolver] = None) -> Any:
    """Evaluate an expression.

    Args:
        expression: Expression text, e.g. ``"$ >= 3 && $ < 10"``.
        value: Value bound to ``$``.
        resolver: Looks up other names; returns :data:`MISSING` for unknown names.

    Returns:
        The result of the expression.

    Raises:
        ExpressionError: If the expression is malformed or fails to evaluate.

    Example:
        >>> evaluate("$ >= 3", value=5)
        True
    """
    source = _translate(expression)
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression {expression!r}: {e.msg}") from e
    try:
        return _Evaluator(value, resolver).visit(tree)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Failed to evaluate {expression!r}: {e}") from e


def coerce_text(text: Optional[str]) -> Any:
    """Turn property text into a bool, int or float when it looks like one."""
    if text is None:
        return None
    lowered = text.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            continue
    return text


def _translate(expression: str) -> str:
    out = []
    quote = ""
    index = 0
    while index < len(expression):
        char = expression[index]
        pair = expression[index : index + 2]
        if quote:
            out.append(char)
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
            out.append(char)
        elif pair == "&&":
            out.append(" and ")
            index += 1
        elif pair == "||":
            out.append(" or ")
            index += 1
        elif char == "!" and pair != "!=":
            out.append(" not ")
        elif char == "$":
            out.append(_VALUE_NAME)
        else:
            out.append(char)
        index += 1
    return "".join(out).strip()


class _Evaluator(ast.NodeVisitor):
    """Evaluates a parsed expression, rejecting any node without a visitor."""

    def __init__(self, value: Any, resolver: Optional[NameResolver]) -> None:
        self._value = value
        self._resolver = resolver

    def generic_visit(self, node: ast.AST) -> Any:
        raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id == _VALUE_NAME:
            return self._value
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        return self._lookup(node.id)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        return self._lookup(_dotted(node))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for operand in node.values:
                result = self.visit(operand)
                if not result:
                    return result
            return result
        result = False
        for operand in node.values:
            result = self.visit(operand)
            if result:
                return result
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.left), self.visit(node.right))

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            op = _COMPARE_OPS.get(type(op_node))
            if op is None:
                raise ExpressionError(f"Unsupported comparison: {type(op_node).__name__}")
            if not op(left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(item) for item in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(item) for item in node.elts)

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS or node.keywords:
            raise ExpressionError("Only builtin functions may be called")
        return _FUNCTIONS[node.func.id](*[self.visit(arg) for arg in node.args])

    def _lookup(self, name: str) -> Any:
        result = self._resolver(name) if self._resolver is not None else MISSING
        if result is MISSING:
            raise ExpressionError(f"Unknown name {name!r}")
        return result


def _dotted(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return _VALUE_NAME if node.id == _VALUE_NAME else node.id
    if isinstance(node, ast.Attribute):
        return f"{_dotted(node.value)}.{node.attr}"
    raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")
