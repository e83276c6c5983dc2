"""Call-site matching and CallSite construction.

``CallSiteFinder.find`` locates ``<receiver>.doAfterSuccessOrError(<one arg>)``
invocations on a reactor ``Mono`` in one traversal of the compilation
unit.  ``CallSiteFinder.build`` turns a match into a CallSite: the
callback's parameters become bindings, and its body is flattened into a
statement arena with guard conditionals recognised.
"""

import logging
from typing import List, Optional, Tuple

import tree_sitter

from ..constants import DO_AFTER_SUCCESS_OR_ERROR, MONO_FQN
from .bindings import BindingResolver
from .edits import detect_newline
from .errors import UnsupportedCallSiteError
from .imports import ImportTable
from .models import (
    Binding,
    CallSite,
    GuardCondition,
    NullCheck,
    Statement,
    StatementArena,
    StatementKind,
)
from .type_resolver import ReceiverTypeResolver, is_mono

logger = logging.getLogger(__name__)

_COMMENTS = frozenset({"line_comment", "block_comment"})


class CallSiteFinder:
    """Finds and builds eligible call sites in one compilation unit."""

    def __init__(
        self,
        root: tree_sitter.Node,
        source: bytes,
        file_path: str = "<memory>",
        imports: Optional[ImportTable] = None,
    ):
        self._root = root
        self._source = source
        self.file_path = file_path
        self.imports = imports or ImportTable.from_tree(root, source)
        self.types = ReceiverTypeResolver(source)
        self._mono_imported = self.imports.covers(MONO_FQN)

    # ── Matching ────────────────────────────────────────────────────

    def find(self) -> List[tree_sitter.Node]:
        """Eligible invocations in source order (outer before nested)."""
        matches: List[tree_sitter.Node] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if node.type == "method_invocation" and self.matches(node):
                matches.append(node)
            stack.extend(reversed(node.named_children))
        logger.debug("%s: %d candidate call site(s)", self.file_path, len(matches))
        return matches

    def matches(self, node: tree_sitter.Node) -> bool:
        """Exact match on ``Mono#doAfterSuccessOrError`` with one argument."""
        if self._text(node.child_by_field_name("name")) != DO_AFTER_SUCCESS_OR_ERROR:
            return False
        receiver = node.child_by_field_name("object")
        if receiver is None or len(_arguments(node)) != 1:
            return False

        receiver_type = self.types.resolve(receiver)
        if receiver_type is not None:
            return is_mono(receiver_type, self._mono_imported)
        return self._mono_imported

    # ── Construction ────────────────────────────────────────────────

    def build(self, node: tree_sitter.Node) -> CallSite:
        """Build the CallSite for a matched invocation.

        Raises:
            UnsupportedCallSiteError: If the argument is not a two-parameter
                lambda with a block body
        """
        name = node.child_by_field_name("name")
        line = name.start_point.row + 1
        callback = _arguments(node)[0]

        if callback.type != "lambda_expression":
            raise UnsupportedCallSiteError(
                f"callback is a {callback.type.replace('_', ' ')}, not a lambda expression", line
            )

        params = self._lambda_parameters(callback)
        if len(params) != 2:
            raise UnsupportedCallSiteError(
                f"callback declares {len(params)} parameter(s), expected (value, error)", line
            )

        body = callback.child_by_field_name("body")
        if body is None or body.type != "block":
            raise UnsupportedCallSiteError("callback body is a single expression, not a block", line)

        resolver = BindingResolver(self._source)
        value_param = resolver.new_binding(*params[0])
        error_param = resolver.new_binding(*params[1])
        resolver.resolve_lambda_body([value_param, error_param], body)

        builder = _ArenaBuilder(self._source, resolver)
        top_level = builder.add_block(body)

        receiver = node.child_by_field_name("object")
        return CallSite(
            file_path=self.file_path,
            line=line,
            receiver_text=self._text(receiver),
            value_param=value_param,
            error_param=error_param,
            receiver_type=self.types.resolve(receiver),
            arena=builder.arena,
            body=top_level,
            replace_start=name.start_byte,
            replace_end=node.end_byte,
            indent_text=_line_indent_text(self._source, name.start_byte),
            reserved_names=frozenset(resolver.free_names | resolver.declared_names),
            newline=detect_newline(self._source),
        )

    def _lambda_parameters(self, callback: tree_sitter.Node) -> List[Tuple[str, Optional[str]]]:
        params = callback.child_by_field_name("parameters")
        if params is None:
            return []
        if params.type == "identifier":
            return [(self._text(params), None)]
        if params.type == "inferred_parameters":
            return [(self._text(p), None) for p in params.named_children if p.type == "identifier"]

        result = []
        for param in params.named_children:
            if param.type == "formal_parameter":
                type_node = param.child_by_field_name("type")
                type_text = self._text(type_node) if type_node is not None else None
                result.append((self._text(param.child_by_field_name("name")), type_text))
            elif param.type == "spread_parameter":
                result.append(("", None))
        return result

    def _text(self, node: Optional[tree_sitter.Node]) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


class _ArenaBuilder:
    """Flattens a callback body into a StatementArena.

    Comments on their own lines attach to the statement that follows them;
    a comment on the same line as the previous statement attaches to that
    statement, unless that statement is a guard.  Comments before a guard,
    after a guard on its closing line, or at the end of a block become
    statements of their own.
    """

    def __init__(self, source: bytes, resolver: BindingResolver):
        self._source = source
        self._resolver = resolver
        self.arena = StatementArena()

    def add_block(self, block: tree_sitter.Node) -> List[int]:
        indices: List[int] = []
        pending: List[tree_sitter.Node] = []
        last_index: Optional[int] = None
        last_row = -1

        for child in block.named_children:
            if child.type in _COMMENTS:
                if last_index is not None and not pending and child.start_point.row == last_row:
                    if self.arena[last_index].kind is StatementKind.GUARD:
                        # a guard's own text is never emitted
                        last_index = self._add_comments([child])
                        indices.append(last_index)
                    else:
                        self._extend(last_index, child.end_byte)
                else:
                    pending.append(child)
                continue

            leading_start = pending[0].start_byte if pending else None
            if pending and self._guard_parts(child) is not None:
                indices.append(self._add_comments(pending))
                leading_start = None
            pending = []

            last_index = self._add_statement(child, leading_start)
            last_row = child.end_point.row
            indices.append(last_index)

        if pending:
            indices.append(self._add_comments(pending))
        return indices

    def _add_statement(self, node: tree_sitter.Node, leading_start: Optional[int] = None) -> int:
        start = node.start_byte if leading_start is None else leading_start
        parts = self._guard_parts(node)
        if parts is None:
            return self.arena.add(self._plain(start, node.end_byte))

        # reserve the slot so the guard precedes its branches in the arena
        index = self.arena.add(self._plain(start, node.end_byte))
        subject, check = parts
        then_branch = self._add_branch(node.child_by_field_name("consequence"))
        alternative = node.child_by_field_name("alternative")
        else_branch = self._add_branch(alternative) if alternative is not None else []

        placeholder = self.arena[index]
        self.arena.statements[index] = Statement.guarded(
            placeholder.text,
            GuardCondition(subject, check, tuple(then_branch), tuple(else_branch)),
            placeholder.references,
            start_byte=placeholder.start_byte,
            end_byte=placeholder.end_byte,
            line=placeholder.line,
            indent=placeholder.indent,
        )
        return index

    def _add_branch(self, node: Optional[tree_sitter.Node]) -> List[int]:
        if node is None:
            return []
        if node.type == "block":
            return self.add_block(node)
        # a bare statement branch is a one-statement block
        return [self._add_statement(node)]

    def _add_comments(self, comments: List[tree_sitter.Node]) -> int:
        return self.arena.add(self._plain(comments[0].start_byte, comments[-1].end_byte))

    def _plain(self, start: int, end: int) -> Statement:
        return Statement.plain(
            self._source[start:end].decode("utf-8", errors="replace"),
            self._resolver.references_in(start, end),
            start_byte=start,
            end_byte=end,
            line=self._source.count(b"\n", 0, start) + 1,
            indent=len(_line_indent_text(self._source, start)),
        )

    def _extend(self, index: int, end: int) -> None:
        statement = self.arena[index]
        statement.end_byte = end
        statement.text = self._source[statement.start_byte:end].decode("utf-8", errors="replace")
        statement.references = self._resolver.references_in(statement.start_byte, end)

    def _guard_parts(self, node: tree_sitter.Node) -> Optional[Tuple[Binding, NullCheck]]:
        """(subject, polarity) if *node* is ``if (<ident> ==/!= null)`` in either operand order."""
        if node.type != "if_statement":
            return None

        expr = _unwrap_parentheses(node.child_by_field_name("condition"))
        if expr is None or expr.type != "binary_expression":
            return None

        operator = expr.child_by_field_name("operator")
        check = NullCheck.from_operator(operator.type) if operator is not None else None
        if check is None:
            return None

        left = expr.child_by_field_name("left")
        right = expr.child_by_field_name("right")
        if left is None or right is None:
            return None
        left, right = _unwrap_parentheses(left), _unwrap_parentheses(right)
        if left is None or right is None:
            return None
        if right.type == "null_literal":
            operand = left
        elif left.type == "null_literal":
            operand = right
        else:
            return None
        if operand.type != "identifier":
            return None

        subject = self._resolver.binding_at(operand)
        if subject is None:
            return None
        return subject, check


def _arguments(invocation: tree_sitter.Node) -> List[tree_sitter.Node]:
    args = invocation.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type not in _COMMENTS]


def _unwrap_parentheses(expr: Optional[tree_sitter.Node]) -> Optional[tree_sitter.Node]:
    """``((x))`` -> ``x``; None when a parenthesis holds more than one node."""
    while expr is not None and expr.type in ("parenthesized_expression", "condition"):
        inner = [c for c in expr.named_children if c.type not in _COMMENTS]
        expr = inner[0] if len(inner) == 1 else None
    return expr


def _line_indent_text(source: bytes, offset: int) -> str:
    """Leading whitespace of the line containing *offset*."""
    start = source.rfind(b"\n", 0, offset) + 1
    end = start
    while end < len(source) and source[end:end + 1] in (b" ", b"\t"):
        end += 1
    return source[start:end].decode("utf-8")
