"""Java AST parser using tree-sitter.

Walks the tree-sitter AST to extract classes, interfaces, enums, methods,
constructors, and import/package statements from Java source files.
"""

import logging
from typing import List, Optional

import tree_sitter
import tree_sitter_java

from .base import BaseLanguageParser
from .models import CodeUnit, ImportDeclaration, PackageDeclaration

logger = logging.getLogger(__name__)

JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

_TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "class",
}

_MEMBER_DECLARATIONS = {
    "method_declaration": "method",
    "constructor_declaration": "constructor",
}


class JavaParser(BaseLanguageParser):
    """tree-sitter based Java parser.

    Extracts:
    - Class, record, interface and enum declarations (nested included)
    - Method and constructor declarations inside them
    - Package and import declarations, with byte spans
    """

    def get_language(self) -> str:
        return "java"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return JAVA_LANGUAGE

    def extract_imports(self, root: tree_sitter.Node, source: bytes) -> List[ImportDeclaration]:
        """Extract import declarations, with byte spans, in source order."""
        imports: List[ImportDeclaration] = []
        for child in root.named_children:
            if child.type != "import_declaration":
                continue
            name_node = _first_named(child, ("scoped_identifier", "identifier"))
            if name_node is None:
                continue
            child_types = {c.type for c in child.children}
            imports.append(
                ImportDeclaration(
                    name=_text(name_node, source),
                    static="static" in child_types,
                    wildcard="asterisk" in child_types or "*" in child_types,
                    start_byte=child.start_byte,
                    end_byte=child.end_byte,
                )
            )
        return imports

    def extract_package(self, root: tree_sitter.Node, source: bytes) -> Optional[PackageDeclaration]:
        for child in root.named_children:
            if child.type == "package_declaration":
                # package com.example.foo;
                name_node = _first_named(child, ("scoped_identifier", "identifier"))
                name = _text(name_node, source) if name_node is not None else ""
                return PackageDeclaration(name=name, end_byte=child.end_byte)
        return None

    def extract_units(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str
    ) -> List[CodeUnit]:
        """Extract type and member declarations from the Java AST."""
        units: List[CodeUnit] = []
        package = self.extract_package(tree.root_node, source)
        package_name = package.name if package is not None else ""

        for child in tree.root_node.children:
            if child.type in _TYPE_DECLARATIONS:
                units.extend(self._extract_type(child, source, file_path, package_name))

        return units

    # =========================================================================
    # Extractors
    # =========================================================================

    def _extract_type(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        prefix: str,
        parent_name: Optional[str] = None,
    ) -> List[CodeUnit]:
        """Extract a type declaration and, recursively, its members."""
        name = self._get_child_text(node, "name", source)
        if not name:
            return []

        qualified_name = f"{prefix}.{name}" if prefix else name
        units = [
            CodeUnit(
                unit_type=_TYPE_DECLARATIONS[node.type],
                name=name,
                qualified_name=qualified_name,
                language="java",
                start_line=node.start_point.row + 1,
                end_line=node.end_point.row + 1,
                source=_text(node, source),
                file_path=file_path,
                signature=self._extract_signature(node, source),
                parent_name=parent_name,
            )
        ]

        body = node.child_by_field_name("body")
        if body is None:
            return units

        for child in body.named_children:
            if child.type in _MEMBER_DECLARATIONS:
                units.append(self._extract_member(child, source, file_path, qualified_name, name))
            elif child.type in _TYPE_DECLARATIONS:
                units.extend(self._extract_type(child, source, file_path, qualified_name, parent_name=name))
            elif child.type == "enum_body_declarations":
                # enum members live one level further down
                for member in child.named_children:
                    if member.type in _MEMBER_DECLARATIONS:
                        units.append(self._extract_member(member, source, file_path, qualified_name, name))

        return units

    def _extract_member(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        owner_qualified_name: str,
        owner_name: str,
    ) -> CodeUnit:
        name = self._get_child_text(node, "name", source) or owner_name
        return CodeUnit(
            unit_type=_MEMBER_DECLARATIONS[node.type],
            name=name,
            qualified_name=f"{owner_qualified_name}.{name}",
            language="java",
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            source=_text(node, source),
            file_path=file_path,
            signature=self._extract_signature(node, source),
            parent_name=owner_name,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_child_text(node: tree_sitter.Node, field_name: str, source: bytes) -> Optional[str]:
        child = node.child_by_field_name(field_name)
        if child:
            return _text(child, source)
        return None

    @staticmethod
    def _extract_signature(node: tree_sitter.Node, source: bytes) -> str:
        """Declaration text up to the opening brace or semicolon, on one line."""
        text = _text(node, source)
        for i, char in enumerate(text):
            if char in "{;":
                text = text[:i]
                break
        return " ".join(text.split())


def _text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _first_named(node: tree_sitter.Node, types) -> Optional[tree_sitter.Node]:
    for child in node.named_children:
        if child.type in types:
            return child
    return None
