"""AST Parser data models.

Parsed representation of a Java compilation unit.  These are pure data
containers.  Import and package declarations keep byte offsets so the
rewrite layer can insert new imports next to them.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ImportDeclaration:
    """``import [static] a.b.C;`` or ``import a.b.*;``"""
    name: str  # "a.b.C" or "a.b" for wildcards
    static: bool
    wildcard: bool
    start_byte: int
    end_byte: int

    @property
    def text(self) -> str:
        prefix = "import static " if self.static else "import "
        suffix = ".*;" if self.wildcard else ";"
        return f"{prefix}{self.name}{suffix}"


@dataclass(frozen=True)
class PackageDeclaration:
    name: str  # "com.example"
    end_byte: int


@dataclass
class CodeUnit:
    """A declaration extracted from a compilation unit.

    Used by the migration engine to name the enclosing method of a
    rewritten call site in reports.
    """

    unit_type: str  # "class" | "interface" | "enum" | "method" | "constructor"
    name: str  # "doSomething"
    qualified_name: str  # "com.example.SomeClass.doSomething"
    language: str  # "java"
    start_line: int
    end_line: int
    source: str  # Raw source code
    file_path: str  # Relative path within project
    signature: Optional[str] = None  # "void doSomething(Mono<String> mono)"
    parent_name: Optional[str] = None  # For methods: class name

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass
class ParseError:
    """An error encountered during parsing."""

    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "warning" | "error"


@dataclass
class ParseResult:
    """Complete parse output for a single file."""

    file_path: str
    language: str
    units: List[CodeUnit]
    imports: List[ImportDeclaration]
    package: Optional[PackageDeclaration] = None
    line_count: int = 0
    errors: List[ParseError] = field(default_factory=list)
    has_syntax_errors: bool = False

    @property
    def package_name(self) -> str:
        return self.package.name if self.package is not None else ""

    def innermost_unit(self, line: int) -> Optional[CodeUnit]:
        """Return the smallest method/constructor unit spanning *line*."""
        candidates = [
            u for u in self.units
            if u.unit_type in ("method", "constructor") and u.contains_line(line)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda u: u.end_line - u.start_line)
