"""Base interface for language-specific AST parsers.

Shared parsing logic lives here; language-specific extraction is delegated.
The raw tree is exposed through ``parse_tree`` for the rewrite layer,
which needs byte offsets rather than extracted units.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import tree_sitter

from .models import CodeUnit, ImportDeclaration, PackageDeclaration, ParseError, ParseResult

logger = logging.getLogger(__name__)


class BaseLanguageParser(ABC):
    """Abstract base for tree-sitter parsers.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    - extract_units(): walks AST tree and extracts CodeUnit objects
    - extract_imports(): extracts import declarations from the root node
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'java')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    @abstractmethod
    def extract_units(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str
    ) -> List[CodeUnit]:
        """Extract code units from a parsed tree-sitter AST."""
        ...

    @abstractmethod
    def extract_imports(self, root: tree_sitter.Node, source: bytes) -> List[ImportDeclaration]:
        """Extract import declarations, in source order."""
        ...

    def extract_package(self, root: tree_sitter.Node, source: bytes) -> Optional[PackageDeclaration]:
        """Return the package/namespace declaration, or None when there is none."""
        return None

    def parse_tree(self, source: bytes) -> tree_sitter.Tree:
        """Parse raw source bytes into a tree-sitter tree."""
        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        return parser.parse(source)

    def parse_source(self, source_text: str, file_path: str) -> ParseResult:
        """Parse source code string into a ParseResult.

        Args:
            source_text: Source code as string
            file_path: Relative file path, recorded on units and errors

        Returns:
            ParseResult with extracted units and declarations
        """
        errors: List[ParseError] = []
        source_bytes = source_text.encode("utf-8")
        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        tree = self.parse_tree(source_bytes)

        has_syntax_errors = tree.root_node.has_error
        if has_syntax_errors:
            errors.append(
                ParseError(
                    file_path=file_path,
                    line=first_error_line(tree.root_node),
                    message="Tree-sitter reported parse errors in file",
                    severity="warning",
                )
            )

        try:
            imports = self.extract_imports(tree.root_node, source_bytes)
        except Exception as e:
            logger.warning(f"Failed to extract imports from {file_path}: {e}")
            imports = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Import extraction failed: {e}"))

        try:
            units = self.extract_units(tree, source_bytes, file_path)
        except Exception as e:
            logger.error(f"Failed to extract units from {file_path}: {e}")
            units = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Unit extraction failed: {e}", severity="error"))

        return ParseResult(
            file_path=file_path,
            language=self.get_language(),
            units=units,
            imports=imports,
            package=self.extract_package(tree.root_node, source_bytes),
            line_count=line_count,
            errors=errors,
            has_syntax_errors=has_syntax_errors,
        )


def first_error_line(root: tree_sitter.Node) -> int:
    """1-based line of the first ERROR or MISSING node, 0 if none is found."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point.row + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return 0
