"""Console for expressivo.

Enter an expression to make it the current one, then apply commands to it:
    !simplify   fold every operation between two numbers
    !d/dx       differentiate w.r.t. x (any variable name works)
"""

import argparse
import logging
import sys

from expressivo import Expression, ExpressionSyntaxError, Variable

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "!"
DIFFERENTIATE_PREFIX = "!d/d"
SIMPLIFY_COMMAND = "!simplify"


def differentiate(expression, variable):
    """Differentiate an expression string w.r.t. variable, returning a string.

    Raises ExpressionSyntaxError for an invalid expression and ValueError for
    an invalid variable name.
    """
    return str(Expression.parse(expression).differentiate(Variable(variable)))


def simplify(expression):
    """Simplify an expression string, returning a string."""
    return str(Expression.parse(expression).simplify())


class Console:
    """Keeps the current expression between lines of input"""

    def __init__(self):
        self.current = None

    # returns the line to print in response to one line of input
    def handle(self, line):
        line = line.strip()
        if not line.startswith(COMMAND_PREFIX):
            try:
                self.current = Expression.parse(line)
            except ExpressionSyntaxError as e:
                return "ParseError: %s" % e
            return str(self.current)

        if self.current is None:
            return "no expression"

        if line == SIMPLIFY_COMMAND:
            self.current = self.current.simplify()
        elif line.startswith(DIFFERENTIATE_PREFIX):
            try:
                variable = Variable(line[len(DIFFERENTIATE_PREFIX):])
            except ValueError as e:
                return "ParseError: %s" % e
            self.current = self.current.differentiate(variable)
        else:
            logger.debug("unknown command %r", line)
            return "unknown command"
        return str(self.current)

    def run(self, stdin, stdout):
        for line in stdin:
            if line.strip() == "":
                continue
            print(self.handle(line), file=stdout)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Parse, differentiate and simplify polynomial expressions.")
    ap.add_argument("expressions", nargs="*",
                    help="expressions to process; without any, read lines and commands from stdin")
    ap.add_argument("-d", "--differentiate", metavar="VARIABLE",
                    help="differentiate each expression w.r.t. VARIABLE")
    ap.add_argument("-s", "--simplify", action="store_true",
                    help="simplify each expression (after differentiating)")
    ap.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if len(args.expressions) == 0:
        Console().run(sys.stdin, sys.stdout)
        return 0

    status = 0
    for string in args.expressions:
        try:
            expression = Expression.parse(string)
            if args.differentiate is not None:
                expression = expression.differentiate(Variable(args.differentiate))
            if args.simplify:
                expression = expression.simplify()
        except ValueError as e:
            # ExpressionSyntaxError is a ValueError, as is an invalid variable name
            print("ParseError: %s" % e, file=sys.stderr)
            status = 1
            continue
        print(expression)
    return status


if __name__ == "__main__":
    sys.exit(main())
