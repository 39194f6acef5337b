# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Boolean conditions over dotted config paths, used by `visible_when`.

    general.use_matugen == true && (theme.mode == "dark" || !theme.auto)
"""

from .logging import get_logger

logger = get_logger(__name__)

PRECEDENCE = {
    '!': 4,
    '==': 3, '!=': 3, '>': 3, '<': 3, '>=': 3, '<=': 3,
    '&&': 2,
    '||': 1,
}
LITERALS = {'true': True, 'false': False, 'null': None}


def tokenize(expression: str):
    """Splits an expression string into tokens."""
    i = 0
    n = len(expression)
    tokens = []
    while i < n:
        char = expression[i]
        if char.isspace():
            i += 1
            continue
        # Numeric literal: digit or dot (with digit following)
        if char.isdigit() or (char == '.' and i + 1 < n and expression[i+1].isdigit()):
            start = i
            dot_count = 1 if char == '.' else 0
            i += 1
            while i < n and (expression[i].isdigit() or (expression[i] == '.' and dot_count == 0)):
                if expression[i] == '.':
                    dot_count += 1
                i += 1
            tokens.append(expression[start:i])
        elif char.isalpha() or char == '_':
            # Dotted path: section.field
            start = i
            while i < n and (expression[i].isalnum() or expression[i] in '_.-'):
                i += 1
            tokens.append(expression[start:i].rstrip('.'))
            i = start + len(tokens[-1])
        elif char in ("'", '"'):
            start = i
            i += 1
            while i < n and expression[i] != char:
                i += 1
            if i >= n:
                raise ValueError(f"Unterminated string starting at {start}")
            i += 1  # include closing quote
            tokens.append(expression[start:i])
        elif char in ('&', '|', '!', '=', '>', '<'):
            if i + 1 < n and expression[i:i+2] in ('&&', '||', '==', '!=', '>=', '<='):
                tokens.append(expression[i:i+2])
                i += 2
            elif char in ('&', '|', '='):
                raise ValueError(f"Unexpected character: {char}")
            else:
                tokens.append(char)
                i += 1
        elif char in ('(', ')'):
            tokens.append(char)
            i += 1
        else:
            raise ValueError(f"Unexpected character: {char}")
    return tokens


def is_operand(token):
    return token not in PRECEDENCE and token not in ('(', ')')


def shunting_yard(tokens, precedence=None):
    """
    Converts a list of tokens (in infix notation) to a postfix list.
    Comparison operators bind tighter than && which binds tighter than ||.
    """
    precedence = precedence or PRECEDENCE
    right_associative = {'!'}
    output = []
    operators = []
    for token in tokens:
        if is_operand(token):
            output.append(token)
        elif token in precedence:
            if token in right_associative:
                while operators and operators[-1] != '(' and precedence[operators[-1]] > precedence[token]:
                    output.append(operators.pop())
            else:
                while operators and operators[-1] != '(' and precedence[operators[-1]] >= precedence[token]:
                    output.append(operators.pop())
            operators.append(token)
        elif token == '(':
            operators.append(token)
        elif token == ')':
            while operators and operators[-1] != '(':
                output.append(operators.pop())
            if operators and operators[-1] == '(':
                operators.pop()
            else:
                raise ValueError("Mismatched parentheses")
    while operators:
        op = operators.pop()
        if op in ('(', ')'):
            raise ValueError("Mismatched parentheses")
        output.append(op)
    return output


def literal_value(token, getter):
    if token[0] in ("'", '"'):
        return token[1:-1]
    if token in LITERALS:
        return LITERALS[token]
    if token[0].isdigit() or token[0] == '.':
        return float(token) if '.' in token else int(token)
    return getter(token)


def eval_operator(op, right, left=None):
    if op == '!':
        return not bool(right)
    elif op == '&&':
        return bool(left) and bool(right)
    elif op == '||':
        return bool(left) or bool(right)
    elif op == '==':
        return left == right
    elif op == '!=':
        return left != right
    try:
        if op == '>':
            return left > right
        elif op == '<':
            return left < right
        elif op == '>=':
            return left >= right
        elif op == '<=':
            return left <= right
    except TypeError:
        # None or mixed types never satisfy an ordering
        return False
    raise ValueError(f"Unknown operator: {op}")


def evaluate_postfix(tokens, getter):
    stack = []
    for token in tokens:
        if is_operand(token):
            stack.append(literal_value(token, getter))
        elif token == '!':
            if not stack:
                raise ValueError("Missing operand for '!'")
            stack.append(eval_operator(token, stack.pop()))
        else:
            if len(stack) < 2:
                raise ValueError(f"Missing operands for '{token}'")
            right = stack.pop()
            left = stack.pop()
            stack.append(eval_operator(token, right, left))
    if len(stack) != 1:
        raise ValueError("Invalid expression: extra items remain on the stack")
    return stack[0]


class Condition:
    """A parsed `visible_when` expression."""

    def __init__(self, source: str):
        self.source = source
        self.postfix = shunting_yard(tokenize(source))
        if not self.postfix:
            raise ValueError("Empty condition")

    def paths(self):
        return [t for t in self.postfix
                if is_operand(t) and (t[0].isalpha() or t[0] == '_') and t not in LITERALS]

    def evaluate(self, getter):
        return bool(evaluate_postfix(self.postfix, getter))


def evaluate_condition(source, getter):
    """Evaluates `source` against `getter(path)`; anything unparsable is visible."""
    if not source or not source.strip():
        return True
    try:
        return Condition(source).evaluate(getter)
    except ValueError as e:
        logger.warning("condition_invalid", condition=source, error=str(e))
        return True
