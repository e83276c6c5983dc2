"""Static type resolution for call-site receivers.

There is no classpath here: types come from declarations visible in the
compilation unit.  Supported receivers:

* identifiers bound to locals, method/lambda parameters, loop and catch
  variables, or fields of an enclosing class
* ``this.field``
* parenthesized expressions and casts
* chains of type-preserving Mono operators ending in one of the above
* ``Mono.just(<literal>)`` and ``Mono.<T>factory(...)``

``var`` locals resolve through their initializer.  Anything else is
unresolved (None).
"""

import logging
from dataclasses import dataclass
from typing import Optional

import tree_sitter

from ..constants import LITERAL_TYPES, MONO_FACTORIES, MONO_FQN, MONO_SIMPLE_NAME, TYPE_PRESERVING_OPERATORS
from .models import ResolvedType

logger = logging.getLogger(__name__)

_LOCAL_SCOPES = frozenset({
    "block",
    "constructor_body",
    "switch_block_statement_group",
    "program",
})

_CALLABLES = frozenset({
    "method_declaration",
    "constructor_declaration",
    "lambda_expression",
})


@dataclass(frozen=True)
class Declaration:
    """Where a name was declared: its type node and, for locals, initializer."""
    type_node: Optional[tree_sitter.Node]
    value_node: Optional[tree_sitter.Node] = None


class ReceiverTypeResolver:
    """Resolves the declared type of an expression within one tree."""

    def __init__(self, source: bytes):
        self._source = source

    # ── Expressions ─────────────────────────────────────────────────

    def resolve(self, expr: Optional[tree_sitter.Node], depth: int = 0) -> Optional[ResolvedType]:
        """Return the static type of *expr*, or None when unknown."""
        if expr is None or depth > 32:
            return None

        kind = expr.type
        if kind == "identifier":
            decl = self.find_declaration(self._text(expr), expr)
            return self._resolve_declaration(decl, depth)

        if kind == "field_access":
            obj = expr.child_by_field_name("object")
            field_node = expr.child_by_field_name("field")
            if obj is not None and obj.type == "this" and field_node is not None:
                decl = self._find_field(self._text(field_node), expr)
                return self._resolve_declaration(decl, depth)
            return None

        if kind == "parenthesized_expression":
            inner = expr.named_children
            return self.resolve(inner[0], depth + 1) if inner else None

        if kind == "cast_expression":
            return self.type_from_node(expr.child_by_field_name("type"))

        if kind == "method_invocation":
            return self._resolve_invocation(expr, depth)

        return None

    def _resolve_invocation(self, expr: tree_sitter.Node, depth: int) -> Optional[ResolvedType]:
        name = self._text(expr.child_by_field_name("name"))
        obj = expr.child_by_field_name("object")
        if obj is None:
            return None

        if self._text(obj) in (MONO_SIMPLE_NAME, MONO_FQN):
            return self._resolve_factory(expr, name)

        if name in TYPE_PRESERVING_OPERATORS:
            return self.resolve(obj, depth + 1)

        return None

    def _resolve_factory(self, expr: tree_sitter.Node, name: str) -> Optional[ResolvedType]:
        mono = self._text(expr.child_by_field_name("object"))
        witness = expr.child_by_field_name("type_arguments")
        if witness is not None:
            args = [self._text(a) for a in witness.named_children]
            if len(args) == 1:
                return ResolvedType(mono, (args[0],))

        if name in MONO_FACTORIES:
            arguments = expr.child_by_field_name("arguments")
            values = arguments.named_children if arguments is not None else []
            if len(values) == 1 and values[0].type in LITERAL_TYPES:
                return ResolvedType(mono, (LITERAL_TYPES[values[0].type],))
            if len(values) == 1 and values[0].type == "identifier":
                value_type = self.resolve(values[0])
                if value_type is not None and value_type.source_text is not None:
                    return ResolvedType(mono, (value_type.source_text,))

        return ResolvedType(mono, (None,))

    def _resolve_declaration(self, decl: Optional[Declaration], depth: int) -> Optional[ResolvedType]:
        if decl is None or decl.type_node is None:
            return None
        if self._text(decl.type_node) == "var":
            return self.resolve(decl.value_node, depth + 1)
        return self.type_from_node(decl.type_node)

    # ── Types ───────────────────────────────────────────────────────

    def type_from_node(self, node: Optional[tree_sitter.Node]) -> Optional[ResolvedType]:
        """Build a ResolvedType from a type node such as ``Mono<String>``."""
        if node is None:
            return None

        if node.type == "annotated_type":
            named = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
            return self.type_from_node(named[-1]) if named else None

        if node.type in ("type_identifier", "scoped_type_identifier"):
            return ResolvedType(self._text(node))

        if node.type == "generic_type":
            head = None
            arguments = None
            for child in node.named_children:
                if child.type in ("type_identifier", "scoped_type_identifier"):
                    head = child
                elif child.type == "type_arguments":
                    arguments = child
            if head is None:
                return None
            args = tuple(self._argument_text(a) for a in arguments.named_children) if arguments else ()
            return ResolvedType(self._text(head), args)

        return None

    def _argument_text(self, node: tree_sitter.Node) -> Optional[str]:
        """Concrete type named by a generic argument; None for ``?``/``? super T``."""
        if node.type != "wildcard":
            return self._text(node)
        keywords = {c.type for c in node.children}
        bound = [c for c in node.named_children if c.type not in ("annotation", "marker_annotation")]
        if "extends" in keywords and bound:
            return self._text(bound[-1])
        return None

    # ── Declarations ────────────────────────────────────────────────

    def find_declaration(self, name: str, at: tree_sitter.Node) -> Optional[Declaration]:
        """Find the declaration of *name* visible at node *at*, walking outwards."""
        child = at
        parent = at.parent
        while parent is not None:
            kind = parent.type

            if kind in _LOCAL_SCOPES:
                decl = self._find_local(name, parent, before=child.start_byte)
                if decl is not None:
                    return decl

            elif kind in _CALLABLES:
                decl = self._find_parameter(name, parent)
                if decl is not None:
                    return decl

            elif kind == "class_body":
                decl = self._find_field_in(name, parent)
                if decl is not None:
                    return decl

            elif kind == "for_statement":
                for init in parent.children_by_field_name("init"):
                    if init.type == "local_variable_declaration":
                        decl = self._match_declarators(name, init)
                        if decl is not None:
                            return decl

            elif kind == "enhanced_for_statement":
                if self._text(parent.child_by_field_name("name")) == name:
                    return Declaration(parent.child_by_field_name("type"))

            elif kind == "catch_clause":
                for param in parent.named_children:
                    if param.type == "catch_formal_parameter" and self._text(param.child_by_field_name("name")) == name:
                        return Declaration(next((c for c in param.named_children if c.type == "catch_type"), None))

            elif kind == "try_with_resources_statement":
                resources = parent.child_by_field_name("resources")
                for resource in resources.named_children if resources is not None else []:
                    if self._text(resource.child_by_field_name("name")) == name:
                        return Declaration(resource.child_by_field_name("type"), resource.child_by_field_name("value"))

            child = parent
            parent = parent.parent

        return None

    def _find_local(self, name: str, scope: tree_sitter.Node, before: int) -> Optional[Declaration]:
        for stmt in scope.named_children:
            if stmt.start_byte >= before:
                break
            if stmt.type == "local_variable_declaration":
                decl = self._match_declarators(name, stmt)
                if decl is not None:
                    return decl
        return None

    def _find_parameter(self, name: str, callable_node: tree_sitter.Node) -> Optional[Declaration]:
        params = callable_node.child_by_field_name("parameters")
        if params is None:
            return None
        if params.type == "identifier":
            # untyped single lambda parameter
            return Declaration(None) if self._text(params) == name else None
        if params.type == "inferred_parameters":
            for ident in params.named_children:
                if self._text(ident) == name:
                    return Declaration(None)
            return None
        for param in params.named_children:
            if param.type == "formal_parameter" and self._text(param.child_by_field_name("name")) == name:
                return Declaration(param.child_by_field_name("type"))
        return None

    def _find_field(self, name: str, at: tree_sitter.Node) -> Optional[Declaration]:
        parent = at.parent
        while parent is not None:
            if parent.type == "class_body":
                return self._find_field_in(name, parent)
            parent = parent.parent
        return None

    def _find_field_in(self, name: str, body: tree_sitter.Node) -> Optional[Declaration]:
        for member in body.named_children:
            if member.type == "field_declaration":
                decl = self._match_declarators(name, member)
                if decl is not None:
                    return decl
        return None

    def _match_declarators(self, name: str, declaration: tree_sitter.Node) -> Optional[Declaration]:
        for declarator in declaration.children_by_field_name("declarator"):
            if self._text(declarator.child_by_field_name("name")) == name:
                return Declaration(declaration.child_by_field_name("type"), declarator.child_by_field_name("value"))
        return None

    def _text(self, node: Optional[tree_sitter.Node]) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def is_mono(resolved: ResolvedType, mono_imported: bool) -> bool:
    """True if *resolved* names reactor's Mono in this compilation unit."""
    if resolved.name == MONO_FQN:
        return True
    return resolved.name == MONO_SIMPLE_NAME and mono_imported
