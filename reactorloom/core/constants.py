"""Shared constants for the Reactor migration.

Fully-qualified names, method names and operator sets used by the
matcher, the type resolver and the listener skeleton.
"""

# =============================================================================
# Deprecated combinator (reactor-core 3.4)
# =============================================================================

MONO_FQN = "reactor.core.publisher.Mono"
MONO_SIMPLE_NAME = "Mono"

# Removed in reactor-core 3.5
DO_AFTER_SUCCESS_OR_ERROR = "doAfterSuccessOrError"

# =============================================================================
# Replacement operator (reactor-core 3.5)
# =============================================================================

TAP = "tap"

DEFAULT_SIGNAL_LISTENER_FQN = "reactor.core.observability.DefaultSignalListener"
SIGNAL_TYPE_FQN = "reactor.core.publisher.SignalType"

# Imports the listener skeleton needs in the compilation unit
LISTENER_IMPORTS = (DEFAULT_SIGNAL_LISTENER_FQN, SIGNAL_TYPE_FQN)

# =============================================================================
# Listener methods
# =============================================================================

ON_NEXT = "doOnNext"
ON_ERROR = "doOnError"
ON_FINALLY = "doFinally"

LISTENER_METHODS = (ON_NEXT, ON_ERROR, ON_FINALLY)

# Error, value, catch-all
DEFAULT_METHOD_ORDER = (ON_ERROR, ON_NEXT, ON_FINALLY)

DEFAULT_TERMINATION_PARAM = "terminationType"

# =============================================================================
# Type resolution
# =============================================================================

# Mono operators whose return type is Mono<T> for a Mono<T> receiver.
# A receiver built from a chain of these resolves to the chain root's type.
TYPE_PRESERVING_OPERATORS = frozenset({
    "cache",
    "checkpoint",
    "contextWrite",
    "defaultIfEmpty",
    "delayElement",
    "doAfterSuccessOrError",
    "doFinally",
    "doOnCancel",
    "doOnError",
    "doOnNext",
    "doOnSubscribe",
    "doOnSuccess",
    "doOnTerminate",
    "filter",
    "hide",
    "log",
    "name",
    "onErrorResume",
    "onErrorReturn",
    "publishOn",
    "retry",
    "subscribeOn",
    "switchIfEmpty",
    "tag",
    "tap",
    "timeout",
})

# Literal node type -> boxed Java type, for Mono.just(<literal>)
LITERAL_TYPES = {
    "string_literal": "String",
    "character_literal": "Character",
    "decimal_integer_literal": "Integer",
    "hex_integer_literal": "Integer",
    "decimal_floating_point_literal": "Double",
    "true": "Boolean",
    "false": "Boolean",
}

# Mono factory methods whose element type follows their single argument
MONO_FACTORIES = frozenset({"just", "justOrEmpty"})
