"""Data contracts for the call-site rewrite.

Statements are stored in a flat arena and referred to by index, so the
classifier and the rewriter pass lists of ints around instead of
rebuilding tree nodes.  Identifiers are modelled as bindings compared by
declaration id only; two variables that share a spelling never compare
equal.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple


class Bucket(Enum):
    """Target listener method of a classified statement."""
    VALUE = "value"      # doOnNext
    ERROR = "error"      # doOnError
    FINALLY = "finally"  # doFinally


class StatementKind(Enum):
    """Tag of the statement variant."""
    PLAIN = "plain"
    GUARD = "guard"


class NullCheck(Enum):
    """Polarity of a guard condition."""
    IS_NULL = "=="
    NOT_NULL = "!="

    @classmethod
    def from_operator(cls, operator: str) -> Optional["NullCheck"]:
        for check in cls:
            if check.value == operator:
                return check
        return None


@dataclass(frozen=True)
class Binding:
    """A declaration an identifier occurrence resolves to.

    Equality and hashing use ``id`` alone.
    """
    id: int
    name: str = field(compare=False)
    type_text: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class GuardCondition:
    """Payload of a guard conditional: ``if (<subject> ==/!= null) ... else ...``.

    Branches hold arena indices.  A branch that is a single bare
    statement holds exactly one index.
    """
    subject: Binding
    check: NullCheck
    then_branch: Tuple[int, ...]
    else_branch: Tuple[int, ...] = ()


@dataclass
class Statement:
    """One statement of a callback body (or of a guard branch).

    ``start_byte``/``end_byte`` cover the statement plus any comments
    attached to it.  ``indent`` is the width of the leading whitespace of
    the line the statement starts on.
    """
    kind: StatementKind
    text: str
    references: FrozenSet[int] = frozenset()
    start_byte: int = 0
    end_byte: int = 0
    line: int = 0
    indent: int = 0
    guard: Optional[GuardCondition] = None

    @classmethod
    def plain(cls, text: str, references: FrozenSet[int] = frozenset(), **location) -> "Statement":
        return cls(kind=StatementKind.PLAIN, text=text, references=references, **location)

    @classmethod
    def guarded(
        cls,
        text: str,
        guard: GuardCondition,
        references: FrozenSet[int] = frozenset(),
        **location,
    ) -> "Statement":
        return cls(kind=StatementKind.GUARD, text=text, references=references, guard=guard, **location)

    def uses(self, binding: Binding) -> bool:
        return binding.id in self.references


@dataclass
class StatementArena:
    """Flat storage for statements, addressed by index."""
    statements: List[Statement] = field(default_factory=list)

    def add(self, statement: Statement) -> int:
        self.statements.append(statement)
        return len(self.statements) - 1

    def __getitem__(self, index: int) -> Statement:
        return self.statements[index]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)


@dataclass
class Buckets:
    """Output of the classifier: three ordered lists of arena indices."""
    value: List[int] = field(default_factory=list)
    error: List[int] = field(default_factory=list)
    finally_: List[int] = field(default_factory=list)

    def add(self, bucket: Bucket, index: int) -> None:
        self.get(bucket).append(index)

    def get(self, bucket: Bucket) -> List[int]:
        if bucket is Bucket.VALUE:
            return self.value
        if bucket is Bucket.ERROR:
            return self.error
        return self.finally_

    def as_dict(self) -> Dict[Bucket, List[int]]:
        return {bucket: list(self.get(bucket)) for bucket in Bucket}

    def bucket_of(self, index: int) -> Optional[Bucket]:
        for bucket in Bucket:
            if index in self.get(bucket):
                return bucket
        return None

    def __len__(self) -> int:
        return len(self.value) + len(self.error) + len(self.finally_)


@dataclass(frozen=True)
class ResolvedType:
    """A statically resolved reference type, e.g. ``Mono<String>``.

    ``arguments`` holds one entry per generic argument; an entry is None
    when the argument cannot serve as a concrete type (``?`` or
    ``? super T``).
    """
    name: str
    arguments: Tuple[Optional[str], ...] = ()

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def is_qualified(self) -> bool:
        return "." in self.name

    @property
    def source_text(self) -> Optional[str]:
        """Java spelling of the type, or None if an argument is not concrete."""
        if not self.arguments:
            return self.name
        if any(a is None for a in self.arguments):
            return None
        return f"{self.name}<{', '.join(self.arguments)}>"


@dataclass
class CallSite:
    """A matched ``doAfterSuccessOrError((value, error) -> { ... })`` invocation.

    ``replace_start``/``replace_end`` span the method name through the
    closing parenthesis of the argument list; the receiver and the dot
    before the name are never touched.
    """
    file_path: str
    line: int
    receiver_text: str
    value_param: Binding
    error_param: Binding
    receiver_type: Optional[ResolvedType]
    arena: StatementArena
    body: List[int]
    replace_start: int
    replace_end: int
    indent_text: str = ""
    reserved_names: FrozenSet[str] = frozenset()
    newline: str = "\n"


@dataclass
class RewriteDiagnostic:
    """A per-site or per-file message produced during a rewrite."""
    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "info" | "warning" | "error"


@dataclass
class CallSiteRewrite:
    """Replacement text for one call site and the imports it needs."""
    call_site: CallSite
    replacement: str
    imports: Tuple[str, ...]
    buckets: Buckets
    notes: List[RewriteDiagnostic] = field(default_factory=list)


@dataclass
class RewriteOutcome:
    """Result of attempting one call site: a rewrite or a diagnostic."""
    file_path: str
    line: int
    rewrite: Optional[CallSiteRewrite] = None
    diagnostic: Optional[RewriteDiagnostic] = None

    @property
    def rewritten(self) -> bool:
        return self.rewrite is not None


@dataclass
class SourceRewriteResult:
    """Result of rewriting one compilation unit."""
    file_path: str
    original_source: str
    source: str
    outcomes: List[RewriteOutcome] = field(default_factory=list)
    diagnostics: List[RewriteDiagnostic] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.source != self.original_source

    @property
    def rewritten_count(self) -> int:
        return sum(1 for o in self.outcomes if o.rewritten)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.rewritten)

    def all_diagnostics(self) -> List[RewriteDiagnostic]:
        """File-level diagnostics followed by per-site ones, in line order."""
        per_site: List[RewriteDiagnostic] = []
        for outcome in self.outcomes:
            if outcome.diagnostic is not None:
                per_site.append(outcome.diagnostic)
            if outcome.rewrite is not None:
                per_site.extend(outcome.rewrite.notes)
        return self.diagnostics + sorted(per_site, key=lambda d: d.line)
