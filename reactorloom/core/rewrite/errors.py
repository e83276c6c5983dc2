"""Per-call-site rewrite failures.

None of these abort a file or a run: the driver turns them into
diagnostics and leaves the call site untouched.
"""


class RewriteError(Exception):
    """Base class for failures local to one call site."""

    def __init__(self, message: str, line: int = 0):
        super().__init__(message)
        self.message = message
        self.line = line


class TypeResolutionError(RewriteError):
    """The element type of the receiving Mono could not be determined."""


class UnsupportedCallSiteError(RewriteError):
    """The call site does not have the shape the rewrite understands.

    Raised for expression-bodied lambdas, method references, lambdas with
    the wrong number of parameters, or any other argument shape.
    """
