"""Call-site rewriter.

Turns a classified call site into ``tap(() -> new DefaultSignalListener<>() {...})``
and drives matching, classification and splicing over a compilation unit.

Only the span from the method name to the closing parenthesis of a
matched call is replaced; import insertions are the only other edits.
A per-site failure leaves that site untouched and is reported as a
diagnostic.
"""

import logging
from typing import Dict, List, Optional

from ..ast_parser import parse_java_tree
from ..ast_parser.base import first_error_line
from ..constants import LISTENER_IMPORTS, ON_ERROR, ON_FINALLY, ON_NEXT
from .classifier import classify
from .edits import TextEdit, apply_edits, slice_with_edits
from .errors import RewriteError, TypeResolutionError
from .imports import ImportRegistrar, ImportTable
from .matcher import CallSiteFinder
from .models import (
    Bucket,
    Buckets,
    CallSite,
    CallSiteRewrite,
    RewriteDiagnostic,
    RewriteOutcome,
    SourceRewriteResult,
)
from .template import ListenerHoles, StatementText, render_listener_call
from ...setting import MigrationSettings, get_settings

logger = logging.getLogger(__name__)

_METHOD_OF_BUCKET = {
    Bucket.VALUE: ON_NEXT,
    Bucket.ERROR: ON_ERROR,
    Bucket.FINALLY: ON_FINALLY,
}


def resolve_element_type(call_site: CallSite) -> str:
    """Element type ``T`` of the ``Mono<T>`` receiver.

    Falls back to the declared type of the value parameter when the
    callback spells it out and the receiver cannot be resolved.

    Raises:
        TypeResolutionError: If no concrete element type is known
    """
    receiver = call_site.receiver_type
    if receiver is not None and receiver.arguments and receiver.arguments[0] is not None:
        return receiver.arguments[0]

    declared = call_site.value_param.type_text
    if declared and declared != "var":
        return declared

    if receiver is None:
        reason = f"cannot resolve the type of receiver '{call_site.receiver_text}'"
    elif not receiver.arguments:
        reason = f"receiver '{call_site.receiver_text}' has raw type {receiver.name}"
    else:
        reason = f"receiver '{call_site.receiver_text}' has no concrete element type"
    raise TypeResolutionError(reason, call_site.line)


def termination_param_name(call_site: CallSite, preferred: str) -> str:
    """*preferred*, suffixed with a number if it would clash with a body name."""
    taken = set(call_site.reserved_names) | {call_site.value_param.name, call_site.error_param.name}
    if preferred not in taken:
        return preferred
    suffix = 1
    while f"{preferred}{suffix}" in taken:
        suffix += 1
    return f"{preferred}{suffix}"


def rewrite_call_site(
    call_site: CallSite,
    buckets: Buckets,
    settings: Optional[MigrationSettings] = None,
) -> CallSiteRewrite:
    """Render the replacement for one classified call site.

    Raises:
        TypeResolutionError: If the element type cannot be resolved
    """
    settings = settings or get_settings()
    element_type = resolve_element_type(call_site)

    holes = ListenerHoles(
        element_type=element_type,
        value_param=call_site.value_param.name,
        error_param=call_site.error_param.name,
        termination_param=termination_param_name(call_site, settings.termination_param_name),
    )
    bodies: Dict[Bucket, List[StatementText]] = {
        bucket: [
            StatementText(call_site.arena[i].text, call_site.arena[i].indent)
            for i in buckets.get(bucket)
        ]
        for bucket in Bucket
    }
    replacement = render_listener_call(
        holes,
        bodies,
        base_indent=call_site.indent_text,
        indent=settings.indent,
        method_order=settings.listener_method_order,
        override=settings.add_override_annotations,
        newline=call_site.newline,
    )

    return CallSiteRewrite(
        call_site=call_site,
        replacement=replacement,
        imports=LISTENER_IMPORTS,
        buckets=buckets,
        notes=_scope_notes(call_site, buckets),
    )


def _scope_notes(call_site: CallSite, buckets: Buckets) -> List[RewriteDiagnostic]:
    """Warn about statements that mention a parameter their method does not declare."""
    own = {
        Bucket.VALUE: call_site.value_param,
        Bucket.ERROR: call_site.error_param,
        Bucket.FINALLY: None,
    }
    notes: List[RewriteDiagnostic] = []
    for bucket in Bucket:
        for index in buckets.get(bucket):
            statement = call_site.arena[index]
            for param in (call_site.value_param, call_site.error_param):
                if param != own[bucket] and statement.uses(param):
                    notes.append(
                        RewriteDiagnostic(
                            file_path=call_site.file_path,
                            line=statement.line,
                            message=(
                                f"statement placed in {_METHOD_OF_BUCKET[bucket]} references "
                                f"'{param.name}', which is not a parameter there"
                            ),
                        )
                    )
    return notes


def attempt_rewrite(
    call_site: CallSite, settings: Optional[MigrationSettings] = None
) -> RewriteOutcome:
    """Classify and rewrite one matched call site.

    Returns the rewrite, or the site's diagnostic if it has to be left
    unchanged.  Never raises for per-site failures.
    """
    buckets = classify(call_site.value_param, call_site.error_param, call_site.arena, call_site.body)
    try:
        rewrite = rewrite_call_site(call_site, buckets, settings)
    except RewriteError as e:
        logger.warning(f"{call_site.file_path}:{e.line}: skipped doAfterSuccessOrError: {e.message}")
        return RewriteOutcome(
            file_path=call_site.file_path,
            line=call_site.line,
            diagnostic=RewriteDiagnostic(call_site.file_path, e.line or call_site.line, e.message),
        )
    return RewriteOutcome(file_path=call_site.file_path, line=call_site.line, rewrite=rewrite)


def rewrite_source(
    source: str,
    file_path: str = "<memory>",
    settings: Optional[MigrationSettings] = None,
) -> SourceRewriteResult:
    """Rewrite every eligible call site of one compilation unit.

    A unit without eligible sites, or with syntax errors, is returned
    unchanged.  Nested sites are rewritten first and their text is carried
    into the enclosing site's statements.
    """
    settings = settings or get_settings()
    result = SourceRewriteResult(file_path=file_path, original_source=source, source=source)

    source_bytes = source.encode("utf-8")
    tree = parse_java_tree(source_bytes)
    if tree.root_node.has_error:
        line = first_error_line(tree.root_node)
        logger.warning(f"{file_path}:{line}: syntax errors, file skipped")
        result.diagnostics.append(
            RewriteDiagnostic(file_path, line, "file has syntax errors; not rewritten", "error")
        )
        return result

    imports = ImportTable.from_tree(tree.root_node, source_bytes)
    finder = CallSiteFinder(tree.root_node, source_bytes, file_path, imports)

    call_sites: List[CallSite] = []
    for node in finder.find():
        try:
            call_sites.append(finder.build(node))
        except RewriteError as e:
            logger.warning(f"{file_path}:{e.line}: skipped doAfterSuccessOrError: {e.message}")
            result.outcomes.append(
                RewriteOutcome(file_path, e.line, diagnostic=RewriteDiagnostic(file_path, e.line, e.message))
            )

    edits: List[TextEdit] = []
    registrar = ImportRegistrar(imports, source_bytes)

    # innermost first; a site's range contains every site nested in it
    for call_site in sorted(call_sites, key=lambda s: s.replace_end - s.replace_start):
        _embed_nested_edits(call_site, edits, source_bytes)
        outcome = attempt_rewrite(call_site, settings)
        result.outcomes.append(outcome)
        if not outcome.rewritten:
            continue
        edits = [e for e in edits if not e.within(call_site.replace_start, call_site.replace_end)]
        edits.append(TextEdit(call_site.replace_start, call_site.replace_end, outcome.rewrite.replacement))
        for fqn in outcome.rewrite.imports:
            registrar.ensure(fqn)

    result.outcomes.sort(key=lambda o: o.line)
    if not edits:
        return result

    rewritten = apply_edits(source_bytes, registrar.edits() + edits)
    result.source = rewritten.decode("utf-8")
    logger.info(
        f"{file_path}: rewrote {result.rewritten_count} call site(s), skipped {result.skipped_count}"
    )
    return result


def _embed_nested_edits(call_site: CallSite, edits: List[TextEdit], source: bytes) -> None:
    """Refresh statement texts of *call_site* that contain already-rewritten sites."""
    inner = [e for e in edits if e.within(call_site.replace_start, call_site.replace_end)]
    if not inner:
        return
    for statement in call_site.arena:
        if any(e.within(statement.start_byte, statement.end_byte) for e in inner):
            statement.text = slice_with_edits(source, statement.start_byte, statement.end_byte, inner)
