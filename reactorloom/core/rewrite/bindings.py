"""Scope-aware identifier resolution inside a callback body.

Every declaration met while walking the body gets a fresh Binding; every
identifier in expression position resolves to the innermost visible
binding.  Occurrences are recorded by byte offset so a statement's
reference set is just the bindings found inside its byte range.

Only identifiers in reference position are resolved.  Method names,
field names after a dot, declaration names, labels, annotation names and
qualified names are skipped.
"""

import logging
from typing import Callable, Dict, FrozenSet, List, Optional, Set, Tuple

import tree_sitter

from .models import Binding

logger = logging.getLogger(__name__)

_SCOPE_NODES = frozenset({
    "block",
    "switch_block",
    "switch_rule",
    "constructor_body",
})

_TYPE_DECLARATIONS = frozenset({
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
})


class BindingResolver:
    """Resolves identifier occurrences to bindings for one call site."""

    def __init__(self, source: bytes):
        self._source = source
        self._next_id = 1
        self._scopes: List[Dict[str, Binding]] = []
        self.occurrences: List[Tuple[int, Binding]] = []
        self.free_names: Set[str] = set()
        self.declared_names: Set[str] = set()
        self._by_offset: Dict[int, Binding] = {}

    # ── Declarations ────────────────────────────────────────────────

    def new_binding(self, name: str, type_text: Optional[str] = None) -> Binding:
        binding = Binding(id=self._next_id, name=name, type_text=type_text)
        self._next_id += 1
        self.declared_names.add(name)
        return binding

    def _declare(self, name_node: Optional[tree_sitter.Node], type_node: Optional[tree_sitter.Node] = None) -> None:
        if name_node is None or not self._scopes:
            return
        name = self._text(name_node)
        type_text = self._text(type_node) if type_node is not None else None
        self._scopes[-1][name] = self.new_binding(name, type_text)

    # ── Entry point ─────────────────────────────────────────────────

    def resolve_lambda_body(self, parameters: List[Binding], body: tree_sitter.Node) -> None:
        """Walk *body* with *parameters* visible as the outermost scope."""
        self._scopes.append({p.name: p for p in parameters})
        try:
            self._visit(body)
        finally:
            self._scopes.pop()
        logger.debug(
            "Resolved %d identifier occurrence(s), %d free name(s)",
            len(self.occurrences),
            len(self.free_names),
        )

    # ── Queries ─────────────────────────────────────────────────────

    def binding_at(self, node: tree_sitter.Node) -> Optional[Binding]:
        """Binding of the identifier *node*, if it resolved to one."""
        return self._by_offset.get(node.start_byte)

    def references_in(self, start: int, end: int) -> FrozenSet[int]:
        return frozenset(b.id for offset, b in self.occurrences if start <= offset < end)

    # ── Walk ────────────────────────────────────────────────────────

    def _visit(self, node: tree_sitter.Node) -> None:
        handler: Optional[Callable[[tree_sitter.Node], None]] = getattr(
            self, f"_visit_{node.type}", None
        )
        if handler is not None:
            handler(node)
        elif node.type in _SCOPE_NODES:
            self._with_scope(lambda: self._visit_children(node))
        elif node.type in _TYPE_DECLARATIONS:
            # local or nested type: only the body can reference outer variables
            body = node.child_by_field_name("body")
            if body is not None:
                self._visit(body)
        else:
            self._visit_children(node)

    def _visit_children(self, node: tree_sitter.Node) -> None:
        for child in node.named_children:
            self._visit(child)

    def _visit_field(self, node: tree_sitter.Node, field_name: str) -> None:
        for child in node.children_by_field_name(field_name):
            self._visit(child)

    def _with_scope(self, walk: Callable[[], None]) -> None:
        self._scopes.append({})
        try:
            walk()
        finally:
            self._scopes.pop()

    def _visit_identifier(self, node: tree_sitter.Node) -> None:
        name = self._text(node)
        for scope in reversed(self._scopes):
            binding = scope.get(name)
            if binding is not None:
                self.occurrences.append((node.start_byte, binding))
                self._by_offset[node.start_byte] = binding
                return
        self.free_names.add(name)

    # Non-reference positions

    def _visit_method_invocation(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "object")
        self._visit_field(node, "type_arguments")
        self._visit_field(node, "arguments")

    def _visit_field_access(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "object")

    def _visit_method_reference(self, node: tree_sitter.Node) -> None:
        # receiver::name; only the receiver can be a variable
        named = node.named_children
        if named:
            self._visit(named[0])

    def _visit_labeled_statement(self, node: tree_sitter.Node) -> None:
        for child in node.named_children:
            if child.type != "identifier":
                self._visit(child)

    def _visit_break_statement(self, node: tree_sitter.Node) -> None:
        return None

    def _visit_continue_statement(self, node: tree_sitter.Node) -> None:
        return None

    def _visit_marker_annotation(self, node: tree_sitter.Node) -> None:
        return None

    def _visit_annotation(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "arguments")

    def _visit_element_value_pair(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "value")

    def _visit_scoped_identifier(self, node: tree_sitter.Node) -> None:
        return None

    def _visit_enum_constant(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "arguments")
        self._visit_field(node, "body")

    # Declarations

    def _visit_local_variable_declaration(self, node: tree_sitter.Node) -> None:
        type_node = node.child_by_field_name("type")
        for declarator in node.children_by_field_name("declarator"):
            self._declare(declarator.child_by_field_name("name"), type_node)
            self._visit_field(declarator, "value")

    def _visit_field_declaration(self, node: tree_sitter.Node) -> None:
        # names were declared when the class body was entered
        for declarator in node.children_by_field_name("declarator"):
            self._visit_field(declarator, "value")

    def _visit_class_body(self, node: tree_sitter.Node) -> None:
        def walk():
            for member in node.named_children:
                if member.type == "field_declaration":
                    type_node = member.child_by_field_name("type")
                    for declarator in member.children_by_field_name("declarator"):
                        self._declare(declarator.child_by_field_name("name"), type_node)
            self._visit_children(node)

        self._with_scope(walk)

    def _visit_method_declaration(self, node: tree_sitter.Node) -> None:
        def walk():
            self._declare_formal_parameters(node.child_by_field_name("parameters"))
            self._visit_field(node, "body")

        self._with_scope(walk)

    _visit_constructor_declaration = _visit_method_declaration

    def _visit_lambda_expression(self, node: tree_sitter.Node) -> None:
        def walk():
            params = node.child_by_field_name("parameters")
            if params is not None:
                if params.type == "identifier":
                    self._declare(params)
                elif params.type == "inferred_parameters":
                    for ident in params.named_children:
                        if ident.type == "identifier":
                            self._declare(ident)
                else:
                    self._declare_formal_parameters(params)
            self._visit_field(node, "body")

        self._with_scope(walk)

    def _visit_enhanced_for_statement(self, node: tree_sitter.Node) -> None:
        def walk():
            self._visit_field(node, "value")
            self._declare(node.child_by_field_name("name"), node.child_by_field_name("type"))
            self._visit_field(node, "body")

        self._with_scope(walk)

    def _visit_for_statement(self, node: tree_sitter.Node) -> None:
        self._with_scope(lambda: self._visit_children(node))

    def _visit_catch_clause(self, node: tree_sitter.Node) -> None:
        def walk():
            for child in node.named_children:
                if child.type == "catch_formal_parameter":
                    type_node = next((c for c in child.named_children if c.type == "catch_type"), None)
                    self._declare(child.child_by_field_name("name"), type_node)
                else:
                    self._visit(child)

        self._with_scope(walk)

    def _visit_try_with_resources_statement(self, node: tree_sitter.Node) -> None:
        def walk():
            for child in node.named_children:
                if child.type == "resource_specification":
                    for resource in child.named_children:
                        self._visit_resource(resource)
                else:
                    self._visit(child)

        self._with_scope(walk)

    def _visit_resource(self, node: tree_sitter.Node) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            # existing variable used as a resource
            self._visit_children(node)
            return
        self._visit_field(node, "value")
        self._declare(name_node, node.child_by_field_name("type"))

    def _visit_instanceof_expression(self, node: tree_sitter.Node) -> None:
        self._visit_field(node, "left")
        self._visit_field(node, "pattern")
        # pattern variable is visible after the test
        self._declare(node.child_by_field_name("name"), node.child_by_field_name("right"))

    def _visit_record_pattern_component(self, node: tree_sitter.Node) -> None:
        for child in node.named_children:
            if child.type == "identifier":
                self._declare(child)
            else:
                self._visit(child)

    def _declare_formal_parameters(self, params: Optional[tree_sitter.Node]) -> None:
        if params is None:
            return
        for param in params.named_children:
            if param.type == "formal_parameter":
                self._declare(param.child_by_field_name("name"), param.child_by_field_name("type"))
            elif param.type == "spread_parameter":
                # Type... name: the declarator carries the name
                declarator = next((c for c in param.named_children if c.type == "variable_declarator"), None)
                if declarator is not None:
                    self._declare(declarator.child_by_field_name("name"))

    def _text(self, node: tree_sitter.Node) -> str:
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
