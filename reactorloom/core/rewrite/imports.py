"""Import table and idempotent import registration for a compilation unit."""

import logging
from typing import List, Optional

import tree_sitter

from ..ast_parser import ImportDeclaration, get_parser
from .edits import TextEdit, detect_newline

logger = logging.getLogger(__name__)


class ImportTable:
    """Package and import declarations of one compilation unit."""

    def __init__(
        self,
        imports: List[ImportDeclaration],
        package_name: str = "",
        package_end: Optional[int] = None,
    ):
        self.imports = imports
        self.package_name = package_name
        self.package_end = package_end

    @classmethod
    def from_tree(cls, root: tree_sitter.Node, source: bytes) -> "ImportTable":
        parser = get_parser("java")
        package = parser.extract_package(root, source)
        if package is None:
            return cls(parser.extract_imports(root, source))
        return cls(parser.extract_imports(root, source), package.name, package.end_byte)

    def covers(self, fqn: str) -> bool:
        """True if the simple name of *fqn* is usable without a new import."""
        package = fqn.rsplit(".", 1)[0] if "." in fqn else ""
        if package == self.package_name or package == "java.lang":
            return True
        for decl in self.imports:
            if decl.static:
                continue
            if decl.wildcard and decl.name == package:
                return True
            if not decl.wildcard and decl.name == fqn:
                return True
        return False


class ImportRegistrar:
    """Collects imports a rewrite needs and turns them into text edits.

    Registration is idempotent: names already covered by the table, or
    already registered, are ignored.
    """

    def __init__(self, table: ImportTable, source: bytes):
        self._table = table
        self._source = source
        self._newline = detect_newline(source)
        self._pending: List[str] = []

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def ensure(self, fqn: str) -> bool:
        """Register *fqn*; return True if it will be added."""
        if self._table.covers(fqn) or fqn in self._pending:
            return False
        self._pending.append(fqn)
        logger.debug("Registered import %s", fqn)
        return True

    def edits(self) -> List[TextEdit]:
        """Insertion edits for every pending import.

        When the existing single-type imports are sorted, each new import
        goes to its lexicographic position; otherwise new imports follow
        the last import.  With no imports at all they follow the package
        declaration, or open the file.
        """
        if not self._pending:
            return []

        new_names = sorted(self._pending)
        nl = self._newline
        regular = [d for d in self._table.imports if not d.static]

        if not self._table.imports:
            block = nl.join(f"import {name};" for name in new_names)
            if self._table.package_end is not None:
                return [TextEdit(self._table.package_end, self._table.package_end, nl + nl + block)]
            return [TextEdit(0, 0, block + nl + nl)]

        names = [d.name for d in regular]
        if regular and names == sorted(names):
            return self._sorted_insertions(new_names, regular)

        last = self._table.imports[-1]
        block = "".join(f"{nl}import {name};" for name in new_names)
        return [TextEdit(last.end_byte, last.end_byte, block)]

    def _sorted_insertions(
        self, new_names: List[str], regular: List[ImportDeclaration]
    ) -> List[TextEdit]:
        edits: List[TextEdit] = []
        for name in new_names:
            following = next((d for d in regular if d.name > name), None)
            if following is not None:
                at = _line_start(self._source, following.start_byte)
                edits.append(TextEdit(at, at, f"import {name};{self._newline}"))
            else:
                at = regular[-1].end_byte
                edits.append(TextEdit(at, at, f"{self._newline}import {name};"))
        return edits


def _line_start(source: bytes, offset: int) -> int:
    return source.rfind(b"\n", 0, offset) + 1
