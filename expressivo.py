import logging
import operator
import re
from collections import namedtuple
from decimal import Context, Decimal, MAX_EMAX, MAX_PREC, MIN_EMIN, localcontext

logger = logging.getLogger(__name__)

# lexical rules, ASCII only
NUMBER_PATTERN = re.compile(r"[0-9]+(?:\.[0-9]+)?")
VARIABLE_PATTERN = re.compile(r"[A-Za-z]+")
TOKEN_PATTERN = re.compile(r"(?P<number>[0-9]+(?:\.[0-9]+)?)|(?P<variable>[A-Za-z]+)|(?P<symbol>[+*()])")
WHITESPACE_PATTERN = re.compile(r"\s*")

# sums and products of finite decimals never round in this context
EXACT_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)

Token = namedtuple("Token", "kind text position")


class ExpressionSyntaxError(ValueError):
    """Raised when a string is not a valid expression"""

    def __init__(self, reason=None):
        self.reason = reason
        if reason is None:
            message = "Undefined syntax error in expression"
        else:
            message = "Syntax error in expression: %s" % reason
        super().__init__(message)


# split a string into number, variable and symbol tokens
# whitespace between tokens is skipped, anything else unknown is an error
def tokenize(string):
    tokens = []
    position = WHITESPACE_PATTERN.match(string).end()
    while position < len(string):
        match = TOKEN_PATTERN.match(string, position)
        if match is None:
            if string[position] == ".":
                raise ExpressionSyntaxError("malformed number at position %d" % position)
            raise ExpressionSyntaxError("unexpected character '%s' at position %d" % (string[position], position))
        tokens.append(Token(match.lastgroup, match.group(), position))
        position = WHITESPACE_PATTERN.match(string, match.end()).end()
    return tokens


def to_decimal(value):
    """Convert an int, float, string or Decimal to an exact Decimal"""
    try:
        return Decimal(str(value))
    except ArithmeticError as e:
        raise ValueError("'%s' is not a number" % value) from e


class Expression:
    """An immutable mathematical expression, represented as an expression tree

    Any concrete subclass of Expression should have these methods:
     - __str__(): a string that parse() reads back into an equal tree.
     - __eq__(other) and __hash__(): structural equality and a consistent hash.
     - differentiate(variable): the derivative w.r.t. variable, unsimplified.
     - simplify(): the tree with every operation between two numbers folded.
     - evaluate(values): the exact value, given values for the variables.
    """

    __slots__ = ()

    # central list of properties of the operators
    OPERATOR_LIST = {"Addition": "+",
                     "Multiplication": "*"}
    PRECEDENCE = {"+": 0,
                  "*": 1}
    OPERATIONS = {"+": operator.add,
                  "*": operator.mul}

    # numbers and variables bind tighter than any operator
    precedence = max(PRECEDENCE.values()) + 1

    # operator overloading:
    # this allows us to perform 'arithmetic' with expressions, and obtain another expression
    def __add__(self, other):
        if not isinstance(other, Expression):
            return NotImplemented
        return Sum(self, other)

    def __mul__(self, other):
        if not isinstance(other, Expression):
            return NotImplemented
        return Product(self, other)

    @staticmethod
    def parse(string):
        """Parse a string into an expression tree.

        Raises ExpressionSyntaxError if the string does not match the grammar
            sum     ::= product ('+' product)*
            product ::= primary ('*' primary)*
            primary ::= number | variable | '(' sum ')'
        """
        try:
            expression = Parser(string).parse_root()
        except ExpressionSyntaxError as e:
            logger.debug("could not parse %r: %s", string, e)
            raise
        logger.debug("parsed %r as %r", string, expression)
        return expression

    # true if self can be an operand of other's operator without parentheses
    def precedes(self, other):
        return self.precedence >= other.precedence

    def differentiate(self, variable):
        raise NotImplementedError("the following expression could not be differentiated: %s" % self)

    def simplify(self):
        return self

    def evaluate(self, values=None):
        raise NotImplementedError("evaluation for the following expression was not possible: %s" % self)


class Parser:
    """Recursive-descent parser, each rule returns the node it recognizes"""

    def __init__(self, string):
        self.tokens = tokenize(string)
        self.index = 0

    def peek(self):
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self):
        token = self.peek()
        if token is None:
            raise ExpressionSyntaxError("unexpected end of input")
        self.index += 1
        return token

    # consume the next token if it is the given symbol
    def accept(self, symbol):
        token = self.peek()
        if token is not None and token.kind == "symbol" and token.text == symbol:
            self.index += 1
            return True
        return False

    def parse_root(self):
        if len(self.tokens) == 0:
            raise ExpressionSyntaxError("empty expression")
        expression = self.parse_sum()
        token = self.peek()
        if token is not None:
            if token.text == ")":
                raise ExpressionSyntaxError("unmatched ')' at position %d" % token.position)
            raise ExpressionSyntaxError("unexpected '%s' at position %d" % (token.text, token.position))
        return expression

    def parse_sum(self):
        # fold left, so a+b+c is (a+b)+c
        expression = self.parse_product()
        while self.accept(Expression.OPERATOR_LIST["Addition"]):
            expression = Sum(expression, self.parse_product())
        return expression

    def parse_product(self):
        expression = self.parse_primary()
        while self.accept(Expression.OPERATOR_LIST["Multiplication"]):
            expression = Product(expression, self.parse_primary())
        return expression

    def parse_primary(self):
        token = self.advance()
        if token.kind == "number":
            return Numeric(token.text)
        if token.kind == "variable":
            return Variable(token.text)
        if token.text == "(":
            expression = self.parse_sum()
            if not self.accept(")"):
                raise ExpressionSyntaxError("missing ')' for '(' at position %d" % token.position)
            return expression
        raise ExpressionSyntaxError("unexpected '%s' at position %d" % (token.text, token.position))


class Numeric(Expression):
    """Represents a nonnegative number, kept exactly as a Decimal"""

    __slots__ = ("_value",)

    def __init__(self, value):
        if isinstance(value, str):
            if NUMBER_PATTERN.fullmatch(value) is None:
                raise ValueError("'%s' is not a nonnegative number" % value)
            value = Decimal(value)
        elif isinstance(value, int) and not isinstance(value, bool):
            value = Decimal(value)
        elif not isinstance(value, Decimal):
            raise TypeError("a number must be given as a string, int or Decimal, not %s" % type(value).__name__)
        if not value.is_finite() or value.is_signed():
            raise ValueError("'%s' is not a nonnegative number" % value)
        self._value = value

    @property
    def value(self):
        return self._value

    def __eq__(self, other):
        if isinstance(other, Numeric):
            return self.value == other.value
        else:
            return False

    # equal Decimals hash equal, whatever their exponent
    def __hash__(self):
        return hash((type(self).__name__, self.value))

    def __str__(self):
        # positional notation, never an exponent; drop trailing fractional zeros
        string = format(self.value, "f")
        if "." in string:
            string = string.rstrip("0").rstrip(".")
        return string

    def __repr__(self):
        return "Numeric('%s')" % self

    def differentiate(self, variable):
        return Numeric(0)

    def evaluate(self, values=None):
        return self.value


class Variable(Expression):
    """Represents a variable, a case-sensitive nonempty string of letters"""

    __slots__ = ("_symbol",)

    def __init__(self, symbol):
        if not isinstance(symbol, str):
            raise TypeError("a variable must be given as a string, not %s" % type(symbol).__name__)
        if VARIABLE_PATTERN.fullmatch(symbol) is None:
            raise ValueError("'%s' is not a valid variable name" % symbol)
        self._symbol = symbol

    @property
    def symbol(self):
        return self._symbol

    def __eq__(self, other):
        if isinstance(other, Variable):
            return self.symbol == other.symbol
        else:
            return False

    def __hash__(self):
        return hash((type(self).__name__, self.symbol))

    def __str__(self):
        return self.symbol

    def __repr__(self):
        return "Variable('%s')" % self.symbol

    # variable can either be a string or of type Variable
    def differentiate(self, variable):
        if isinstance(variable, str):
            variable = Variable(variable)

        if variable == self:
            return Numeric(1)
        else:
            return Numeric(0)

    def evaluate(self, values=None):
        if values is None:
            values = {}
        try:
            return to_decimal(values[self.symbol])
        except KeyError as e:
            raise KeyError("variable '%s' was unspecified" % self.symbol) from e


class BinaryNode(Expression):
    """A node in the expression tree representing a binary operator"""

    __slots__ = ("_lhs", "_rhs")

    op_symbol = None

    def __init__(self, lhs, rhs):
        for operand in (lhs, rhs):
            if not isinstance(operand, Expression):
                raise TypeError("operands of '%s' must be expressions, not %s" % (self.op_symbol, type(operand).__name__))
        self._lhs = lhs
        self._rhs = rhs

    @property
    def lhs(self):
        return self._lhs

    @property
    def rhs(self):
        return self._rhs

    # order matters: a+b and b+a are different trees
    def __eq__(self, other):
        if type(self) == type(other):
            return self.lhs == other.lhs and self.rhs == other.rhs
        else:
            return False

    def __hash__(self):
        return hash((type(self).__name__, self.lhs, self.rhs))

    def __str__(self):
        lstring = str(self.lhs)
        rstring = str(self.rhs)

        # parenthesize an operand only if it binds looser than this operator
        if not self.lhs.precedes(self):
            lstring = "(%s)" % lstring
        if not self.rhs.precedes(self):
            rstring = "(%s)" % rstring
        return "%s%s%s" % (lstring, self.op_symbol, rstring)

    def __repr__(self):
        return "%s(%r, %r)" % (type(self).__name__, self.lhs, self.rhs)

    def operate(self, lvalue, rvalue):
        with localcontext(EXACT_CONTEXT):
            return Expression.OPERATIONS[self.op_symbol](lvalue, rvalue)

    def evaluate(self, values=None):
        return self.operate(self.lhs.evaluate(values), self.rhs.evaluate(values))

    def simplify(self):
        lhs = self.lhs.simplify()
        rhs = self.rhs.simplify()

        # evaluate operations between two numbers
        if isinstance(lhs, Numeric) and isinstance(rhs, Numeric):
            return Numeric(self.operate(lhs.value, rhs.value))

        # no identities such as x*1 or x+0, just the operation between the simplified sides
        return type(self)(lhs, rhs)


class Sum(BinaryNode):
    """Represents the addition operator"""

    __slots__ = ()

    op_symbol = Expression.OPERATOR_LIST["Addition"]
    precedence = Expression.PRECEDENCE[op_symbol]

    def differentiate(self, variable):
        return self.lhs.differentiate(variable) + self.rhs.differentiate(variable)


class Product(BinaryNode):
    """Represents the multiplication operator"""

    __slots__ = ()

    op_symbol = Expression.OPERATOR_LIST["Multiplication"]
    precedence = Expression.PRECEDENCE[op_symbol]

    # product rule
    def differentiate(self, variable):
        lderiv = self.lhs.differentiate(variable)
        rderiv = self.rhs.differentiate(variable)
        return self.lhs * rderiv + lderiv * self.rhs
