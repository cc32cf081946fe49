"""
Core components: operator registry, Quantity splitter, parse tree, Expression
"""

import math
import re
from enum import IntEnum
from types import MappingProxyType
from typing import Callable, Dict, List, Optional, Set, Union

import numpy as np

from .mathutil import trim_double


# ============================================================================
# OPERATOR REGISTRY
# ============================================================================

class Action(IntEnum):
    """Parse tree operators. Non-negative values index FNAMES."""
    CORRUPTED = -2
    NO_OP = -1
    U_MINUS = 0
    SUM = 1
    RECIPROCAL = 2
    PRODUCT = 3
    POWER = 4
    SQRT = 5
    EXPONENTIAL = 6
    LOG = 7
    SINE = 8
    COSINE = 9
    TANGENT = 10
    ABS = 11


FIRST_FUNCTION = Action.SQRT

FNAMES = ("-", "+", "/", "*", "^", "sqrt", "exp", "log", "sin", "cos", "tan", "abs")

# Arguments arrive already evaluated. numpy keeps IEEE semantics (inf, nan)
# where the math module would raise.
EVALUATORS = MappingProxyType({
    Action.U_MINUS: lambda args: np.negative(args[0]),
    Action.SUM: lambda args: np.sum(args),
    Action.RECIPROCAL: lambda args: np.divide(1.0, args[0]),
    Action.PRODUCT: lambda args: np.prod(args),
    Action.POWER: lambda args: np.power(np.float64(args[0]), np.float64(args[1])),
    Action.SQRT: lambda args: np.sqrt(args[0]),
    Action.EXPONENTIAL: lambda args: np.exp(args[0]),
    Action.LOG: lambda args: np.log(args[0]),
    Action.SINE: lambda args: np.sin(args[0]),
    Action.COSINE: lambda args: np.cos(args[0]),
    Action.TANGENT: lambda args: np.tan(args[0]),
    Action.ABS: lambda args: np.abs(args[0]),
})


def find_first(target: str, names=FNAMES) -> Action:
    """Operator whose name `target` starts with, NO_OP if none."""
    for i, name in enumerate(names):
        if target.startswith(name):
            return Action(i)
    return Action.NO_OP


# ============================================================================
# QUANTITY (balanced parenthesis split)
# ============================================================================

class Quantity:
    """
    Balanced-parenthesis decomposition of a string.

    `children` alternates plain text (even positions) and nested Quantity
    objects (odd positions). It is None when the parentheses do not balance.
    """

    def __init__(self, s: str):
        self.children = self._split(s)

    @staticmethod
    def _split(s: str):
        depth = 0
        starts, ends = [0], []
        for i, ch in enumerate(s):
            if ch == '(':
                if depth == 0:
                    ends.append(i)
                    starts.append(i + 1)
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth < 0:
                    return None
                if depth == 0:
                    ends.append(i)
                    starts.append(i + 1)
        ends.append(len(s))
        if depth != 0 or len(starts) % 2 == 0:
            return None

        children = []
        for k, (st, en) in enumerate(zip(starts, ends)):
            text = s[st:en]
            if k % 2 == 0:
                children.append(text)
            else:
                q = Quantity(text)
                if q.children is None:
                    return None
                children.append(q)
        return children

    def __repr__(self):
        if self.children is None:
            return "Quantity(<unbalanced>)"
        return "".join(
            f"[{c!r}]" if isinstance(c, Quantity) else c for c in self.children
        )


# ============================================================================
# PARSE TREE
# ============================================================================

class ParseNode:
    """
    Expression tree node.

    Leaves carry `text` (a number or a name) and no children. Internal nodes
    carry an operator and an ordered child list. `value` caches a constant.
    """

    def __init__(self, operator: Action = Action.NO_OP, children: List['ParseNode'] = None,
                 text: str = None):
        self.operator = operator
        self.children = children
        self.text = text
        self.value: Optional[float] = None
        self.bad_flag = False

    @classmethod
    def leaf(cls, text: str) -> 'ParseNode':
        return cls(Action.NO_OP, None, text)

    @classmethod
    def parse(cls, s: str) -> 'ParseNode':
        """Build a tree from text. Failure yields a CORRUPTED node with bad_flag set."""
        node = TreeBuilder().build(Quantity(s))
        if node is None:
            node = cls(Action.CORRUPTED, None, s)
            node.bad_flag = True
        return node

    def is_leaf(self) -> bool:
        return self.children is None

    def evaluate(self, lookup: Callable[[str], Optional[float]] = None) -> float:
        if self.value is not None:
            return self.value
        if self.operator in (Action.NO_OP, Action.CORRUPTED):
            v = lookup(self.text) if lookup else None
            if v is None:
                raise RuntimeError(f"{self.text} is undefined")
            return v
        return EVALUATORS[self.operator]([c.evaluate(lookup) for c in self.children])

    def __repr__(self):
        if self.operator == Action.NO_OP:
            return str(self.text)
        if self.children is None:
            return f"<{self.operator.name}>"
        return f"<{self.operator.name} " + " ".join(repr(c) for c in self.children) + ">"


_PLACEHOLDER = re.compile(r"(#\d+#)")


class TreeBuilder:
    """Recursive descent over sums, products, powers and named functions."""

    def build(self, q: Optional[Quantity]) -> Optional[ParseNode]:
        if q is None or q.children is None:
            return None
        if len(q.children) == 1:
            return self._parse_sum(q.children[0])

        pieces, subs = [], {}
        for i, child in enumerate(q.children):
            if isinstance(child, Quantity):
                key = f"#{i}#"
                pieces.append(key)
                subs[key] = child
            else:
                pieces.append(child.strip())
        return self._replace_sub_expressions(subs, self._parse_sum("".join(pieces)))

    def _replace_sub_expressions(self, subs: Dict[str, Quantity],
                                 node: Optional[ParseNode]) -> Optional[ParseNode]:
        if node is None:
            return None
        if node.children is not None:
            for i, child in enumerate(node.children):
                node.children[i] = self._replace_sub_expressions(subs, child)
                if node.children[i] is None:
                    return None
            return node

        if not subs:
            return node
        if node.text in subs:
            return self.build(subs[node.text])
        parts = [p.strip() for p in _PLACEHOLDER.split(node.text) if p.strip()]
        if len(parts) == 1 and parts[0] not in subs:
            return node

        factors = []
        for part in parts:
            factor = self.build(subs[part]) if part in subs else ParseNode.leaf(part)
            if factor is None:
                return None
            factors.append(factor)
        return ParseNode(Action.PRODUCT, factors)

    @staticmethod
    def _tokenize(s: str, delimiters: str) -> List[str]:
        return [t for t in re.split(f"([{re.escape(delimiters)}])", s) if t]

    def _parse_sum(self, s: str) -> Optional[ParseNode]:
        s = s.strip()
        if '+' not in s and '-' not in s:
            return self._parse_product(s)
        if not s.startswith(('+', '-')):
            s = '+' + s

        tokens = self._tokenize(s, "+-")
        if len(tokens) % 2:
            return None
        children = []
        for op, operand in zip(tokens[0::2], tokens[1::2]):
            op = op.strip()
            if op not in ('+', '-'):
                return None
            term = self._parse_product(operand.strip())
            if term is None:
                return None
            children.append(ParseNode(Action.U_MINUS, [term]) if op == '-' else term)
        return ParseNode(Action.SUM, children)

    def _parse_product(self, s: str) -> Optional[ParseNode]:
        if '*' not in s and '/' not in s:
            return self._parse_power(s)

        tokens = self._tokenize('*' + s.strip(), "*/")
        if len(tokens) % 2:
            return None
        children = []
        for op, operand in zip(tokens[0::2], tokens[1::2]):
            op = op.strip()
            if op not in ('*', '/'):
                return None
            factor = self._parse_power(operand.strip())
            if factor is None:
                return None
            children.append(ParseNode(Action.RECIPROCAL, [factor]) if op == '/' else factor)
        return ParseNode(Action.PRODUCT, children)

    def _parse_power(self, s: str) -> Optional[ParseNode]:
        s = s.strip()
        c = s.find('^')
        if c < 0:
            return self._parse_function(s)
        base = self._parse_function(s[:c])
        exponent = self._parse_function(s[c + 1:])
        if base is None or exponent is None:
            return None
        return ParseNode(Action.POWER, [base, exponent])

    def _parse_function(self, s: str) -> Optional[ParseNode]:
        s = s.strip()
        op = find_first(s)
        if op == Action.NO_OP:
            return ParseNode.leaf(s)
        if op < FIRST_FUNCTION:
            return None
        arg = self._parse_function(s[len(FNAMES[op]):])
        if arg is None:
            return None
        return ParseNode(op, [arg])


# ============================================================================
# EXPRESSION
# ============================================================================

KNOWNS = {"pi": math.pi, "Pi": math.pi, "PI": math.pi}

GREEK_NAMES = ("alpha", "beta", "gamma", "delta", "phi", "lambda", "theta")

LEGAL_VARIABLES = (
    tuple(KNOWNS)
    + GREEK_NAMES
    + tuple(chr(c) for c in range(ord('A'), ord('Z') + 1))
    + tuple(chr(c) for c in range(ord('a'), ord('z') + 1))
)

# Longest names first so "theta" wins over "t", "pi" over "p"
_NAME_SPLIT = re.compile(
    "(" + "|".join(re.escape(n) for n in sorted(LEGAL_VARIABLES, key=len, reverse=True)) + ")"
)
_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")


def split_implied(text: str) -> List[str]:
    """Split a leaf such as '3xy' into its implied factors ['3', 'x', 'y']."""
    return [p.strip() for p in _NAME_SPLIT.split(text) if p.strip()]


class Expression:
    """
    Parse tree plus variable bookkeeping.

    `var_strings` lists the free variables (sorted), `value` holds the
    constant value when the expression has none, and `parameters` maps
    bound parameter names (lower case) to their values.
    """

    def __init__(self, source: Union[str, ParseNode]):
        self.root: Optional[ParseNode] = None
        self.variables: Dict[ParseNode, Set[str]] = {}
        self.parameters: Dict[str, float] = {}
        self.var_strings: List[str] = []
        self.value: Optional[float] = None
        self.value_string: Optional[str] = None

        if isinstance(source, str):
            self._elaborate(ParseNode.parse(source))
        elif source.operator == Action.U_MINUS:
            self._elaborate(ParseNode(Action.SUM, [source]))
        elif source.operator == Action.RECIPROCAL:
            self._elaborate(ParseNode(Action.PRODUCT, [ParseNode.leaf("1"), source]))
        else:
            self._elaborate(source)

    @classmethod
    def constant(cls, value: float) -> 'Expression':
        """Expression for a number, rounded the way condensed constants print."""
        if not math.isfinite(value):
            node = ParseNode.leaf(trim_double(value, 12))
            node.value = value
            return cls(node)
        return cls(trim_double(value, 12))

    def _elaborate(self, root: ParseNode):
        self.root = root
        if root.bad_flag:
            return
        if not self._fix_implied_multiplication(root):
            root.bad_flag = True
            return
        if self._find_variables(root) is None:
            self.root = None
            self.variables = {}
            return
        with np.errstate(all="ignore"):
            self._condense_constants(root)
        if root.value is not None:
            self.value = float(root.value)
            self.value_string = trim_double(self.value, 12)
        self.var_strings = sorted(self.variables[root])

    def _fix_implied_multiplication(self, node: ParseNode) -> bool:
        if node.operator == Action.NO_OP:
            if node.value is not None or node.text in LEGAL_VARIABLES:
                return True
            pieces = split_implied(node.text)
            if len(pieces) > 1:
                node.operator = Action.PRODUCT
                node.children = [ParseNode.leaf(p) for p in pieces]
                node.text = None
            return True

        if node.operator == Action.POWER:
            base, exponent = node.children
            leading, trailing = [], []
            if base.operator == Action.NO_OP and base.value is None:
                pieces = split_implied(base.text)
                if not pieces:
                    return False
                leading = [ParseNode.leaf(p) for p in pieces[:-1]]
                base = ParseNode.leaf(pieces[-1])
            elif not self._fix_implied_multiplication(base):
                return False
            if exponent.operator == Action.NO_OP and exponent.value is None:
                pieces = split_implied(exponent.text)
                if not pieces:
                    return False
                exponent = ParseNode.leaf(pieces[0])
                trailing = [ParseNode.leaf(p) for p in pieces[1:]]
            elif not self._fix_implied_multiplication(exponent):
                return False

            power = ParseNode(Action.POWER, [base, exponent])
            if not leading and not trailing:
                node.children = power.children
                return True
            node.operator = Action.PRODUCT
            node.children = leading + [power] + trailing
            return True

        if node.children:
            return all(self._fix_implied_multiplication(c) for c in node.children)
        return True

    def _find_variables(self, node: ParseNode) -> Optional[Set[str]]:
        names = set()
        if node.operator == Action.NO_OP:
            text = node.text.strip() if node.text else ""
            if text in KNOWNS:
                node.value = KNOWNS[text]
            elif text in LEGAL_VARIABLES:
                names.add(text)
            elif node.value is None:
                if not _NUMBER.fullmatch(text):
                    return None
                node.value = float(text)
        else:
            for child in node.children or ():
                child_names = self._find_variables(child)
                if child_names is None:
                    return None
                names |= child_names
        self.variables[node] = names
        return names

    def _condense_constants(self, node: ParseNode):
        if node.value is not None:
            return
        if not self.variables[node]:
            node.value = float(node.evaluate())
            return
        for child in node.children or ():
            self._condense_constants(child)

    # ------------------------------------------------------------------
    # Parameters and evaluation
    # ------------------------------------------------------------------

    def set_parameters(self, parameters: Dict[str, float]):
        """Bind parameter values; bound names leave the free variable list."""
        self.parameters = parameters
        self.var_strings = [v for v in self.var_strings if v.lower() not in parameters]

    def _lookup(self, inputs: Dict[str, float]):
        def lookup(name):
            v = self.parameters.get(name.lower())
            return inputs.get(name) if v is None else v
        return lookup

    def evaluate(self, inputs: Optional[Dict[str, float]] = None) -> float:
        if self.value is not None:
            return self.value
        with np.errstate(all="ignore"):
            return float(self.root.evaluate(self._lookup(inputs or {})))

    def is_valid(self) -> bool:
        return self.root is not None and not self.root.bad_flag

    def is_simple(self) -> bool:
        return self.root.operator == Action.NO_OP and len(self.var_strings) == 1

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _compose(self, root: ParseNode, *others: 'Expression') -> 'Expression':
        e = Expression(root)
        params = dict(self.parameters)
        for other in others:
            params.update(other.parameters)
        if params:
            e.set_parameters(params)
        return e

    def sum(self, other: 'Expression') -> 'Expression':
        return self._compose(ParseNode(Action.SUM, [self.root, other.root]), other)

    def product(self, other: 'Expression') -> 'Expression':
        return self._compose(ParseNode(Action.PRODUCT, [self.root, other.root]), other)

    def difference(self, other: 'Expression') -> 'Expression':
        return self.sum(Expression.negate(other))

    def quotient(self, other: 'Expression') -> 'Expression':
        p = ParseNode(Action.PRODUCT, [self.root, ParseNode(Action.RECIPROCAL, [other.root])])
        return self._compose(p, other)

    @staticmethod
    def negate(other: 'Expression') -> 'Expression':
        r = other.root
        if r.operator == Action.SUM and len(r.children) == 1 \
                and r.children[0].operator == Action.U_MINUS:
            return other._compose(ParseNode(Action.SUM, [r.children[0].children[0]]))
        return other._compose(ParseNode(Action.SUM, [ParseNode(Action.U_MINUS, [r])]))

    @staticmethod
    def reciprocal(other: 'Expression') -> 'Expression':
        r = other.root
        if r.operator == Action.PRODUCT and len(r.children) == 1 \
                and r.children[0].operator == Action.RECIPROCAL:
            return other._compose(ParseNode(Action.PRODUCT, [r.children[0].children[0]]))
        p = ParseNode(Action.PRODUCT, [ParseNode.leaf("1"), ParseNode(Action.RECIPROCAL, [r])])
        return other._compose(p)

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def __str__(self):
        if self.root is None:
            return ""
        return self._show_term(self.root) or ""

    def __repr__(self):
        return f"Expression({str(self)!r})"

    def _show_term(self, r: ParseNode) -> str:
        op = r.operator
        if op == Action.NO_OP:
            s = r.text.strip()
            v = self.parameters.get(s.lower())
            if v is not None:
                return f"({float(v)})" if v < 0 else str(float(v))
            return s
        if op == Action.SUM:
            return self._show_sum(r)
        if op == Action.PRODUCT:
            return self._show_product(r)
        if op == Action.POWER:
            return self._show_power(r)
        if op == Action.U_MINUS:
            return "-(" + self._show_term(r.children[0]) + ")"
        if op == Action.RECIPROCAL:
            return "1/(" + self._show_term(r.children[0]) + ")"
        if op >= FIRST_FUNCTION:
            return FNAMES[op] + "(" + self._show_term(r.children[0]) + ")"
        return r.text or ""

    def _show_sum(self, r: ParseNode) -> str:
        s = ""
        for t in r.children:
            if t.operator == Action.U_MINUS:
                s += " -"
                t = t.children[0]
            else:
                s += " +"
            if t.operator == Action.SUM:
                s += "(" + self._show_term(t) + ")"
            else:
                s += self._show_term(t)
        s = s.strip()
        if s.startswith("+"):
            s = s[1:].strip()
        return s

    def _show_product(self, r: ParseNode) -> str:
        s = ""
        for t in r.children:
            needs_parens = False
            if t.operator == Action.RECIPROCAL:
                s += "/"
                t = t.children[0]
                needs_parens = True
            else:
                s += "*"
            if t.operator == Action.SUM or (needs_parens and t.operator != Action.NO_OP):
                s += "(" + self._show_term(t) + ")"
            else:
                s += self._show_term(t)
        s = s.strip()
        if s.startswith("*"):
            s = s[1:].strip()
        return s

    def _show_power(self, r: ParseNode) -> str:
        base, power = r.children
        b = self._show_term(base)
        p = self._show_term(power)
        if base.operator != Action.NO_OP:
            b = "(" + b + ")"
        if power.operator != Action.NO_OP:
            p = "(" + p + ")"
        return b + "^" + p
