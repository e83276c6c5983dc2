"""End-to-end rewrites of compilation units."""

import textwrap

import pytest

from reactorloom.core.ast_parser import parse_java_tree
from reactorloom.core.rewrite import rewrite_source
from reactorloom.setting import MigrationSettings


def _java(body: str, imports: str = "import reactor.core.publisher.Mono;") -> str:
    """A Demo class whose run(Mono<String> mono) method holds *body*."""
    inner = textwrap.indent(textwrap.dedent(body).strip("\n"), " " * 8)
    return (
        "package com.example;\n"
        "\n"
        f"{imports}\n"
        "\n"
        "class Demo {\n"
        "    void run(Mono<String> mono) {\n"
        f"{inner}\n"
        "    }\n"
        "}\n"
    )


def _rewrite(source: str, **overrides):
    return rewrite_source(source, "Demo.java", MigrationSettings(**overrides))


# ── Fixtures ──────────────────────────────────────────────────────────────


GUARD_WITH_ELSE = _java(
    """
    mono.doAfterSuccessOrError((result, error) -> {
        if (error != null) {
            System.out.println(error);
        } else {
            System.out.println(result);
        }
        System.out.println("done");
    }).subscribe();
    """
)

GUARD_WITH_ELSE_EXPECTED = """package com.example;

import reactor.core.observability.DefaultSignalListener;
import reactor.core.publisher.Mono;
import reactor.core.publisher.SignalType;

class Demo {
    void run(Mono<String> mono) {
        mono.tap(() -> new DefaultSignalListener<>() {
            @Override
            public void doOnError(Throwable error) {
                System.out.println(error);
            }

            @Override
            public void doOnNext(String result) {
                System.out.println(result);
            }

            @Override
            public void doFinally(SignalType terminationType) {
                System.out.println("done");
            }
        }).subscribe();
    }
}
"""


# ── Rewrites ──────────────────────────────────────────────────────────────


class TestRewrite:
    def test_guard_with_else(self):
        result = _rewrite(GUARD_WITH_ELSE)
        assert result.source == GUARD_WITH_ELSE_EXPECTED
        assert result.changed
        assert result.rewritten_count == 1
        assert result.skipped_count == 0
        assert result.all_diagnostics() == []

    @pytest.mark.parametrize(
        "body,expected",
        [
            (
                """
                if (result != null) System.out.println(result);
                if (error != null) System.out.println(error);
                System.out.println("done");
                """,
                (["System.out.println(result);"], ["System.out.println(error);"], ['System.out.println("done");']),
            ),
            (
                """
                if (error == null) System.out.println(result);
                if (result == null) System.out.println(error);
                System.out.println("done");
                """,
                (["System.out.println(result);"], ["System.out.println(error);"], ['System.out.println("done");']),
            ),
            (
                """
                doX();
                if (error != null) {
                    System.out.println(error);
                    doY(error);
                } else {
                    System.out.println(result);
                    doY(result);
                }
                """,
                (
                    ["System.out.println(result);", "doY(result);"],
                    ["System.out.println(error);", "doY(error);"],
                    ["doX();"],
                ),
            ),
            (
                """
                if ((error) != null) System.out.println(error);
                System.out.println(result);
                """,
                (["System.out.println(result);"], ["System.out.println(error);"], []),
            ),
        ],
    )
    def test_bucket_scenarios(self, body, expected):
        indented = "\n".join("    " + line for line in textwrap.dedent(body).strip("\n").split("\n"))
        source = _java(f"mono.doAfterSuccessOrError((result, error) -> {{\n{indented}\n}});")
        (outcome,) = _rewrite(source).outcomes
        site = outcome.rewrite.call_site
        buckets = outcome.rewrite.buckets
        assert tuple(
            [site.arena[i].text for i in indices]
            for indices in (buckets.value, buckets.error, buckets.finally_)
        ) == expected

    def test_outcome_records_buckets(self):
        result = _rewrite(GUARD_WITH_ELSE)
        (outcome,) = result.outcomes
        assert outcome.line == 7
        buckets = outcome.rewrite.buckets
        assert (len(buckets.value), len(buckets.error), len(buckets.finally_)) == (1, 1, 1)

    def test_rewritten_source_parses(self):
        result = _rewrite(GUARD_WITH_ELSE)
        assert not parse_java_tree(result.source.encode("utf-8")).root_node.has_error

    def test_comments_and_continuation_lines(self):
        result = _rewrite(
            _java(
                """
                mono.doAfterSuccessOrError((result, error) -> {
                    // keep the value
                    cache.put(result,
                            result.length());
                    System.out.println("done");
                });
                """
            )
        )
        assert (
            "            public void doOnNext(String result) {\n"
            "                // keep the value\n"
            "                cache.put(result,\n"
            "                        result.length());\n"
            "            }\n"
        ) in result.source

    def test_comment_after_guard_is_kept(self):
        result = _rewrite(
            _java(
                """
                mono.doAfterSuccessOrError((result, error) -> {
                    if (error != null) {
                        System.out.println(error);
                    } // keep me
                    System.out.println("done");
                });
                """
            )
        )
        assert (
            "            public void doFinally(SignalType terminationType) {\n"
            "                // keep me\n"
            '                System.out.println("done");\n'
            "            }\n"
        ) in result.source

    def test_crlf_source_stays_crlf(self):
        result = _rewrite(GUARD_WITH_ELSE.replace("\n", "\r\n"))
        assert result.source == GUARD_WITH_ELSE_EXPECTED.replace("\n", "\r\n")

    def test_upstream_method_order(self):
        result = _rewrite(GUARD_WITH_ELSE, listener_method_order=["doFinally", "doOnNext", "doOnError"])
        positions = [
            result.source.index(f"public void {method}(")
            for method in ("doFinally", "doOnNext", "doOnError")
        ]
        assert positions == sorted(positions)

    def test_without_override(self):
        result = _rewrite(GUARD_WITH_ELSE, add_override_annotations=False)
        assert "@Override" not in result.source
        assert "            public void doOnError(Throwable error) {\n" in result.source

    def test_tab_indent(self):
        result = _rewrite(GUARD_WITH_ELSE, indent="\t")
        assert "        \tpublic void doOnNext(String result) {\n" in result.source

    def test_termination_parameter_avoids_body_names(self):
        result = _rewrite(
            _java(
                """
                mono.doAfterSuccessOrError((result, error) -> {
                    String terminationType = "done";
                    System.out.println(terminationType);
                });
                """
            )
        )
        assert "public void doFinally(SignalType terminationType1) {" in result.source

    def test_explicit_lambda_types_are_a_fallback(self):
        result = _rewrite(
            _java(
                """
                lookup().doAfterSuccessOrError((Order order, Throwable failure) -> {
                    System.out.println(order);
                });
                """
            )
        )
        assert "public void doOnNext(Order order) {" in result.source
        assert "public void doOnError(Throwable failure) {" in result.source

    def test_chained_receiver_keeps_its_line_indent(self):
        result = _rewrite(
            _java(
                """
                mono.log()
                    .doAfterSuccessOrError((result, error) -> {
                        System.out.println(result);
                    })
                    .subscribe();
                """
            )
        )
        assert (
            "                public void doOnNext(String result) {\n"
            "                    System.out.println(result);\n"
            "                }\n"
        ) in result.source
        assert "\n            })\n            .subscribe();\n" in result.source

    def test_nested_sites(self):
        result = _rewrite(
            _java(
                """
                mono.doAfterSuccessOrError((result, error) -> {
                    Mono.just(1).doAfterSuccessOrError((n, failure) -> {
                        System.out.println(n);
                    }).subscribe();
                    System.out.println(result);
                });
                """
            )
        )
        assert result.rewritten_count == 2
        assert "doAfterSuccessOrError" not in result.source
        assert result.source.count("tap(() -> new DefaultSignalListener<>() {") == 2
        assert result.source.count("import reactor.core.publisher.SignalType;") == 1
        assert "public void doOnNext(Integer n) {" in result.source
        assert not parse_java_tree(result.source.encode("utf-8")).root_node.has_error


# ── Diagnostics ───────────────────────────────────────────────────────────


class TestDiagnostics:
    def test_statement_out_of_scope_is_reported(self):
        result = _rewrite(
            _java(
                """
                mono.doAfterSuccessOrError((result, error) -> {
                    System.out.println(result + " " + error);
                });
                """
            )
        )
        assert result.rewritten_count == 1
        (note,) = result.all_diagnostics()
        assert note.line == 8
        assert note.severity == "warning"
        assert "doOnNext references 'error'" in note.message

    def test_unresolved_element_type_leaves_site(self):
        source = _java(
            """
            Mono.empty().doAfterSuccessOrError((result, error) -> {
                System.out.println(result);
            });
            """
        )
        result = _rewrite(source)
        assert result.source == source
        assert result.skipped_count == 1
        (diagnostic,) = result.all_diagnostics()
        assert diagnostic.line == 7
        assert "no concrete element type" in diagnostic.message

    @pytest.mark.parametrize(
        "callback",
        [
            "(result, error) -> System.out.println(result)",
            "this::report",
            "result -> { }",
        ],
    )
    def test_unsupported_callbacks_leave_site(self, callback):
        source = _java(f"mono.doAfterSuccessOrError({callback});")
        result = _rewrite(source)
        assert result.source == source
        assert result.rewritten_count == 0
        assert result.skipped_count == 1

    def test_one_failure_does_not_block_other_sites(self):
        result = _rewrite(
            _java(
                """
                Mono.empty().doAfterSuccessOrError((result, error) -> { });
                mono.doAfterSuccessOrError((result, error) -> {
                    System.out.println(result);
                });
                """
            )
        )
        assert result.rewritten_count == 1
        assert result.skipped_count == 1
        assert "Mono.empty().doAfterSuccessOrError(" in result.source
        assert "mono.tap(() -> new DefaultSignalListener<>() {" in result.source

    def test_syntax_errors_skip_the_file(self):
        source = "class Broken {\n    void run( {\n"
        result = _rewrite(source)
        assert result.source == source
        (diagnostic,) = result.diagnostics
        assert diagnostic.severity == "error"
        assert result.outcomes == []


# ── Untouched input ───────────────────────────────────────────────────────


class TestUnmatched:
    def test_no_call_sites(self):
        source = _java("mono.subscribe();")
        result = _rewrite(source)
        assert result.source is source
        assert not result.changed

    def test_non_mono_receivers(self):
        source = (
            "class Demo {\n"
            "    void run(Callbacks callbacks) {\n"
            "        callbacks.doAfterSuccessOrError((a, b) -> { });\n"
            "        lookup().doAfterSuccessOrError((a, b) -> { });\n"
            "        callbacks.doAfterSuccessOrError(a, b);\n"
            "    }\n"
            "}\n"
        )
        result = _rewrite(source)
        assert result.source is source
        assert result.outcomes == []

    def test_crlf_source_is_preserved_when_unmatched(self):
        source = _java("mono.subscribe();").replace("\n", "\r\n")
        assert _rewrite(source).source == source
