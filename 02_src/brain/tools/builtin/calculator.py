"""Arithmetic without eval()."""

import ast
import operator
from typing import Any

from ...errors import ToolExecutionError, ToolValidationError
from ...models import ToolDefinition

BINARY_OPERATIONS = {
    "add": operator.add,
    "subtract": operator.sub,
    "multiply": operator.mul,
    "divide": operator.truediv,
    "power": operator.pow,
    "modulo": operator.mod,
}

_AST_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.BitXor: operator.pow,  # "^" reads as power to most users
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

MAX_EXPONENT = 10000
MAX_RESULT_BITS = 65536


def _format(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _check_size(value):
    if isinstance(value, int) and value.bit_length() > MAX_RESULT_BITS:
        raise ValueError("result too large")
    return value


def _power(base, exponent):
    if abs(exponent) > MAX_EXPONENT:
        raise ValueError("exponent too large")
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0:
        # lower bound on the result size, checked before computing it
        if (abs(base).bit_length() - 1) * exponent > MAX_RESULT_BITS:
            raise ValueError("result too large")
    return _check_size(operator.pow(base, exponent))


def evaluate_expression(expression: str) -> float | int:
    """Evaluate numbers, parentheses and + - * / // % ** ^."""

    def _eval(node: ast.AST):
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in _AST_OPERATORS:
            op = _AST_OPERATORS[type(node.op)]
            if op is operator.pow:
                return _power(_eval(node.left), _eval(node.right))
            return _check_size(op(_eval(node.left), _eval(node.right)))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _AST_OPERATORS:
            return _AST_OPERATORS[type(node.op)](_eval(node.operand))
        raise ValueError(f"unsupported element: {type(node).__name__}")

    return _eval(ast.parse(expression, mode="eval"))


class CalculatorTool:
    definition = ToolDefinition(
        name="calculator",
        description=(
            "Performs arithmetic. Either give an operation with two operands "
            "(add, subtract, multiply, divide, power, modulo) or an expression "
            "such as '(3 * 4) / 2'."
        ),
        parameters={
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": list(BINARY_OPERATIONS),
                    "description": "Operation to apply to a and b",
                },
                "a": {"type": "number", "description": "First operand"},
                "b": {"type": "number", "description": "Second operand"},
                "expression": {
                    "type": "string",
                    "description": "Arithmetic expression, used instead of operation",
                },
            },
        },
    )

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        expression = arguments.get("expression")
        operation = arguments.get("operation")

        try:
            if expression:
                return _format(evaluate_expression(expression))
            if operation is None or "a" not in arguments or "b" not in arguments:
                raise ToolValidationError(
                    name, "Provide either 'expression' or 'operation' with 'a' and 'b'"
                )
            op = BINARY_OPERATIONS[operation]
            if op is operator.pow:
                return _format(_power(arguments["a"], arguments["b"]))
            return _format(_check_size(op(arguments["a"], arguments["b"])))
        except ZeroDivisionError as e:
            raise ToolExecutionError(name, "Division by zero") from e
        except (ValueError, SyntaxError, TypeError, OverflowError) as e:
            raise ToolExecutionError(name, f"Cannot evaluate: {e}") from e
