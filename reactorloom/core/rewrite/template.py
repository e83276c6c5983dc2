"""Listener skeleton for the ``tap`` replacement.

The skeleton has named holes for the element type, the parameter names
and the three method bodies::

    tap(() -> new DefaultSignalListener<>() {
        @Override
        public void doOnError(Throwable {error_param}) {
            {error body}
        }
        ...
    })

Method order and annotations come from settings.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from ..constants import ON_ERROR, ON_FINALLY, ON_NEXT, TAP
from .models import Bucket

METHOD_BUCKETS = {
    ON_NEXT: Bucket.VALUE,
    ON_ERROR: Bucket.ERROR,
    ON_FINALLY: Bucket.FINALLY,
}


@dataclass(frozen=True)
class StatementText:
    """Source text of one statement and the indent of the line it started on."""
    text: str
    indent: int = 0


@dataclass(frozen=True)
class ListenerHoles:
    """Values for the named holes of the skeleton."""
    element_type: str
    value_param: str
    error_param: str
    termination_param: str


def reindent(statement: StatementText, prefix: str) -> List[str]:
    """Lines of *statement* moved under *prefix*.

    The first line starts at the statement itself.  Continuation lines
    lose up to ``statement.indent`` leading whitespace characters, which
    keeps their indentation relative to the statement's own line.
    """
    lines = statement.text.rstrip().split("\n")
    out = [prefix + lines[0].strip()]
    for line in lines[1:]:
        stripped = line.rstrip()
        if not stripped.strip():
            out.append("")
            continue
        cut = 0
        while cut < statement.indent and cut < len(stripped) and stripped[cut] in " \t":
            cut += 1
        out.append(prefix + stripped[cut:])
    return out


def parameter_list(method: str, holes: ListenerHoles) -> str:
    if method == ON_NEXT:
        return f"{holes.element_type} {holes.value_param}"
    if method == ON_ERROR:
        return f"Throwable {holes.error_param}"
    return f"SignalType {holes.termination_param}"


def render_listener_call(
    holes: ListenerHoles,
    bodies: Dict[Bucket, Sequence[StatementText]],
    base_indent: str,
    indent: str,
    method_order: Sequence[str],
    override: bool = True,
    newline: str = "\n",
) -> str:
    """Render ``tap(() -> new DefaultSignalListener<>() { ... })``.

    Args:
        holes: Type and parameter names
        bodies: Statements per bucket, in order
        base_indent: Indentation of the line holding the call
        indent: One indentation step
        method_order: Listener method names in output order
        override: Emit @Override on each method
        newline: Line separator between generated lines

    Returns:
        Replacement text starting at the method name; the closing
        parenthesis sits on its own line at *base_indent*.
    """
    member = base_indent + indent
    body = member + indent

    lines = [f"{TAP}(() -> new DefaultSignalListener<>() {{"]
    for position, method in enumerate(method_order):
        if position:
            lines.append("")
        if override:
            lines.append(f"{member}@Override")
        lines.append(f"{member}public void {method}({parameter_list(method, holes)}) {{")
        for statement in bodies.get(METHOD_BUCKETS[method], ()):
            lines.extend(reindent(statement, body))
        lines.append(f"{member}}}")
    lines.append(f"{base_indent}}})")
    return newline.join(lines)
