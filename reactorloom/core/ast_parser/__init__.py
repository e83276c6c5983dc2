"""reactorloom AST Parser: tree-sitter based Java parsing.

Public API:
    parse_source(source, file_path, language) → ParseResult
    parse_java_tree(source_bytes) → tree_sitter.Tree
    detect_language(file_path) → str | None
"""

import tree_sitter

from .models import CodeUnit, ImportDeclaration, PackageDeclaration, ParseError, ParseResult
from .utils import detect_language, get_parser, should_skip_directory

__all__ = [
    "parse_source",
    "parse_java_tree",
    "detect_language",
    "get_parser",
    "should_skip_directory",
    "CodeUnit",
    "ImportDeclaration",
    "PackageDeclaration",
    "ParseError",
    "ParseResult",
]


def parse_source(source_text: str, file_path: str, language: str | None = None) -> ParseResult:
    """Parse source code string into structured code units.

    Args:
        source_text: Source code as string
        file_path: Relative file path, recorded on units and errors
        language: Language identifier. If None, detected from file_path.

    Returns:
        ParseResult containing extracted code units

    Raises:
        ValueError: If no supported language applies
    """
    if language is None:
        language = detect_language(file_path)
    if language is None:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_source(source_text, file_path)


def parse_java_tree(source: bytes) -> tree_sitter.Tree:
    """Parse Java source bytes into a raw tree-sitter tree."""
    return get_parser("java").parse_tree(source)
