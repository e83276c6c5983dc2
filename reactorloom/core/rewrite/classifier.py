"""Statement classifier.

Partitions the statements of a ``(value, error) -> { ... }`` callback body
into the three listener methods in a single pass over the body:

* A guard ``if (p != null)`` / ``if (p == null)`` on one of the two
  parameters splits its branches.  The branch that runs when ``p`` is
  present goes to p's bucket, filtered by whether each statement actually
  uses the parameter checked for that branch (non-users go to FINALLY);
  the other branch goes wholesale to the opposite bucket.
* Any other statement goes to VALUE if it uses the value parameter, else
  ERROR if it uses the error parameter, else FINALLY.

A statement using both parameters lands in VALUE because the value check
runs first.  That bias is kept as is for compatibility.

This is a lexical heuristic, not data-flow analysis: compound conditions,
loops or try blocks get no special treatment and fall back to the default
rule.
"""

import logging
from typing import Iterable, Tuple

from .models import (
    Binding,
    Bucket,
    Buckets,
    GuardCondition,
    NullCheck,
    StatementArena,
    StatementKind,
)

logger = logging.getLogger(__name__)


def uses_identifier(arena: StatementArena, index: int, binding: Binding) -> bool:
    """True if the statement at *index* references *binding*'s declaration."""
    return arena[index].uses(binding)


def default_bucket(
    arena: StatementArena, index: int, value_param: Binding, error_param: Binding
) -> Bucket:
    """Bucket of a statement that is not a recognised guard."""
    if uses_identifier(arena, index, value_param):
        return Bucket.VALUE
    if uses_identifier(arena, index, error_param):
        return Bucket.ERROR
    return Bucket.FINALLY


def classify(
    value_param: Binding,
    error_param: Binding,
    arena: StatementArena,
    body: Iterable[int],
) -> Buckets:
    """Partition *body* (arena indices, in source order) into buckets.

    Never raises; every statement reached receives exactly one bucket and
    relative source order is kept inside each bucket.
    """
    buckets = Buckets()

    for index in body:
        statement = arena[index]
        guard = statement.guard if statement.kind is StatementKind.GUARD else None

        if guard is not None and guard.subject in (value_param, error_param):
            _split_guard(guard, value_param, error_param, arena, buckets)
        else:
            buckets.add(default_bucket(arena, index, value_param, error_param), index)

    logger.debug(
        "Classified %d statement(s): value=%d error=%d finally=%d",
        len(buckets),
        len(buckets.value),
        len(buckets.error),
        len(buckets.finally_),
    )
    return buckets


def _split_guard(
    guard: GuardCondition,
    value_param: Binding,
    error_param: Binding,
    arena: StatementArena,
    buckets: Buckets,
) -> None:
    then_param, then_bucket, else_bucket = _guard_targets(guard, value_param, error_param)

    for index in guard.then_branch:
        if uses_identifier(arena, index, then_param):
            buckets.add(then_bucket, index)
        else:
            buckets.add(Bucket.FINALLY, index)

    for index in guard.else_branch:
        buckets.add(else_bucket, index)


def _guard_targets(
    guard: GuardCondition, value_param: Binding, error_param: Binding
) -> Tuple[Binding, Bucket, Bucket]:
    """Return (parameter the then-branch is filtered on, then bucket, else bucket).

    value != null -> then: value/VALUE, else: ERROR
    value == null -> then: error/ERROR, else: VALUE
    error != null -> then: error/ERROR, else: VALUE
    error == null -> then: value/VALUE, else: ERROR
    """
    if guard.subject == value_param:
        present = (value_param, Bucket.VALUE)
        absent = (error_param, Bucket.ERROR)
    else:
        present = (error_param, Bucket.ERROR)
        absent = (value_param, Bucket.VALUE)

    if guard.check is NullCheck.NOT_NULL:
        (then_param, then_bucket), (_, else_bucket) = present, absent
    else:
        (then_param, then_bucket), (_, else_bucket) = absent, present

    return then_param, then_bucket, else_bucket
