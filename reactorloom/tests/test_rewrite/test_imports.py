"""Import registration, text edits and the listener skeleton."""

import pytest

from reactorloom.core.ast_parser import get_parser, parse_java_tree
from reactorloom.core.constants import DEFAULT_METHOD_ORDER, LISTENER_IMPORTS
from reactorloom.core.rewrite.edits import TextEdit, apply_edits, detect_newline, slice_with_edits
from reactorloom.core.rewrite.imports import ImportRegistrar, ImportTable
from reactorloom.core.rewrite.models import Bucket
from reactorloom.core.rewrite.template import (
    ListenerHoles,
    StatementText,
    parameter_list,
    reindent,
    render_listener_call,
)


def _table(source: str) -> ImportTable:
    data = source.encode("utf-8")
    return ImportTable.from_tree(parse_java_tree(data).root_node, data)


def _with_listener_imports(source: str) -> str:
    data = source.encode("utf-8")
    registrar = ImportRegistrar(ImportTable.from_tree(parse_java_tree(data).root_node, data), data)
    for fqn in LISTENER_IMPORTS:
        registrar.ensure(fqn)
    return apply_edits(data, registrar.edits()).decode("utf-8")


# =========================================================================
# Tests: Import table
# =========================================================================

class TestImportTable:
    def test_declarations(self):
        table = _table(
            "package com.example;\n"
            "\n"
            "import java.util.List;\n"
            "import static java.util.Objects.requireNonNull;\n"
            "import reactor.core.publisher.*;\n"
            "\n"
            "class Demo {}\n"
        )
        assert table.package_name == "com.example"
        assert [(d.name, d.static, d.wildcard) for d in table.imports] == [
            ("java.util.List", False, False),
            ("java.util.Objects.requireNonNull", True, False),
            ("reactor.core.publisher", False, True),
        ]
        assert table.imports[2].text == "import reactor.core.publisher.*;"

    def test_declarations_come_from_the_parser(self):
        data = b"package com.example;\nimport java.util.List;\nclass Demo {}\n"
        root = parse_java_tree(data).root_node
        table = ImportTable.from_tree(root, data)
        assert table.imports == get_parser("java").extract_imports(root, data)
        assert table.package_end == data.index(b";") + 1

    def test_exact_import_covers(self):
        table = _table("import reactor.core.publisher.SignalType;\nclass Demo {}\n")
        assert table.covers("reactor.core.publisher.SignalType")
        assert not table.covers("reactor.core.publisher.Mono")

    def test_wildcard_covers_its_package_only(self):
        table = _table("import reactor.core.*;\nclass Demo {}\n")
        assert table.covers("reactor.core.Scannable")
        assert not table.covers("reactor.core.publisher.SignalType")

    def test_same_package_and_java_lang(self):
        table = _table("package reactor.core.publisher;\nclass Demo {}\n")
        assert table.covers("reactor.core.publisher.SignalType")
        assert table.covers("java.lang.Throwable")

    def test_static_import_does_not_cover(self):
        table = _table("import static reactor.core.publisher.SignalType;\nclass Demo {}\n")
        assert not table.covers("reactor.core.publisher.SignalType")


# =========================================================================
# Tests: Import registration
# =========================================================================

class TestImportRegistrar:
    def test_sorted_imports_keep_order(self):
        result = _with_listener_imports(
            "import java.util.List;\n"
            "import reactor.core.publisher.Mono;\n"
            "\n"
            "class Demo {}\n"
        )
        assert result == (
            "import java.util.List;\n"
            "import reactor.core.observability.DefaultSignalListener;\n"
            "import reactor.core.publisher.Mono;\n"
            "import reactor.core.publisher.SignalType;\n"
            "\n"
            "class Demo {}\n"
        )

    def test_unsorted_imports_get_appended(self):
        result = _with_listener_imports(
            "import reactor.core.publisher.Mono;\n"
            "import java.util.List;\n"
            "\n"
            "class Demo {}\n"
        )
        assert result == (
            "import reactor.core.publisher.Mono;\n"
            "import java.util.List;\n"
            "import reactor.core.observability.DefaultSignalListener;\n"
            "import reactor.core.publisher.SignalType;\n"
            "\n"
            "class Demo {}\n"
        )

    def test_no_imports_after_package(self):
        result = _with_listener_imports("package com.example;\n\nclass Demo {}\n")
        assert result == (
            "package com.example;\n"
            "\n"
            "import reactor.core.observability.DefaultSignalListener;\n"
            "import reactor.core.publisher.SignalType;\n"
            "\n"
            "class Demo {}\n"
        )

    def test_no_imports_no_package(self):
        result = _with_listener_imports("class Demo {}\n")
        assert result == (
            "import reactor.core.observability.DefaultSignalListener;\n"
            "import reactor.core.publisher.SignalType;\n"
            "\n"
            "class Demo {}\n"
        )

    @pytest.mark.parametrize(
        "source",
        [
            "import java.util.List;\nimport reactor.core.publisher.Mono;\n\nclass Demo {}\n",
            "import reactor.core.publisher.Mono;\nimport java.util.List;\n\nclass Demo {}\n",
            "package com.example;\n\nclass Demo {}\n",
            "class Demo {}\n",
        ],
    )
    def test_crlf_source_gets_crlf_imports(self, source):
        expected = _with_listener_imports(source).replace("\n", "\r\n")
        assert _with_listener_imports(source.replace("\n", "\r\n")) == expected

    def test_ensure_is_idempotent(self):
        data = b"import java.util.List;\nclass Demo {}\n"
        registrar = ImportRegistrar(ImportTable.from_tree(parse_java_tree(data).root_node, data), data)
        assert registrar.ensure("reactor.core.publisher.SignalType")
        assert not registrar.ensure("reactor.core.publisher.SignalType")
        assert not registrar.ensure("java.util.List")
        assert registrar.pending == ["reactor.core.publisher.SignalType"]
        assert len(registrar.edits()) == 1

    def test_already_imported(self):
        source = (
            "import reactor.core.observability.DefaultSignalListener;\n"
            "import reactor.core.publisher.SignalType;\n"
            "class Demo {}\n"
        )
        assert _with_listener_imports(source) == source


# =========================================================================
# Tests: Text edits
# =========================================================================

class TestEdits:
    def test_apply_in_offset_order(self):
        source = b"abcdef"
        edits = [TextEdit(4, 5, "E"), TextEdit(0, 1, "A")]
        assert apply_edits(source, edits) == b"AbcdEf"

    def test_insertions_at_same_offset_keep_given_order(self):
        assert apply_edits(b"xy", [TextEdit(1, 1, "1"), TextEdit(1, 1, "2")]) == b"x12y"

    def test_overlap_raises(self):
        with pytest.raises(ValueError, match="Overlapping"):
            apply_edits(b"abcdef", [TextEdit(0, 3, "x"), TextEdit(2, 4, "y")])

    def test_multibyte_offsets(self):
        source = "é = x;".encode("utf-8")
        start = source.index(b"x")
        assert apply_edits(source, [TextEdit(start, start + 1, "y")]).decode("utf-8") == "é = y;"

    def test_slice_with_edits(self):
        source = b"0123456789"
        edits = [TextEdit(3, 4, "X"), TextEdit(8, 9, "Y")]
        assert slice_with_edits(source, 2, 6, edits) == "2X45"

    def test_within(self):
        assert TextEdit(3, 5, "").within(3, 5)
        assert not TextEdit(2, 5, "").within(3, 5)

    @pytest.mark.parametrize(
        "source,expected",
        [(b"class A {}\r\n", "\r\n"), (b"class A {}\n", "\n"), (b"class A {}", "\n"), (b"\nclass A {}\r\n", "\n")],
    )
    def test_detect_newline(self, source, expected):
        assert detect_newline(source) == expected


# =========================================================================
# Tests: Listener skeleton
# =========================================================================

HOLES = ListenerHoles("String", "result", "error", "terminationType")


class TestTemplate:
    def test_reindent_keeps_relative_indentation(self):
        statement = StatementText(
            "if (ready) {\n"
            "                fire();\n"
            "\n"
            "            }",
            indent=12,
        )
        assert reindent(statement, "    ") == ["    if (ready) {", "        fire();", "", "    }"]

    def test_reindent_never_cuts_code(self):
        statement = StatementText("call(a,\n  b);", indent=12)
        assert reindent(statement, "") == ["call(a,", "b);"]

    def test_parameter_lists(self):
        assert parameter_list("doOnNext", HOLES) == "String result"
        assert parameter_list("doOnError", HOLES) == "Throwable error"
        assert parameter_list("doFinally", HOLES) == "SignalType terminationType"

    def test_render(self):
        bodies = {
            Bucket.VALUE: [StatementText("System.out.println(result);", 12)],
            Bucket.ERROR: [StatementText("System.out.println(error);", 16)],
        }
        text = render_listener_call(HOLES, bodies, "        ", "    ", DEFAULT_METHOD_ORDER)
        assert text == (
            "tap(() -> new DefaultSignalListener<>() {\n"
            "            @Override\n"
            "            public void doOnError(Throwable error) {\n"
            "                System.out.println(error);\n"
            "            }\n"
            "\n"
            "            @Override\n"
            "            public void doOnNext(String result) {\n"
            "                System.out.println(result);\n"
            "            }\n"
            "\n"
            "            @Override\n"
            "            public void doFinally(SignalType terminationType) {\n"
            "            }\n"
            "        })"
        )

    def test_render_without_override(self):
        text = render_listener_call(HOLES, {}, "", "  ", ("doFinally",), override=False)
        assert text == (
            "tap(() -> new DefaultSignalListener<>() {\n"
            "  public void doFinally(SignalType terminationType) {\n"
            "  }\n"
            "})"
        )

    def test_render_with_crlf(self):
        bodies = {Bucket.FINALLY: [StatementText("call(a,\r\n        b);\r\n", 4)]}
        text = render_listener_call(HOLES, bodies, "", "  ", ("doFinally",), override=False, newline="\r\n")
        assert text == (
            "tap(() -> new DefaultSignalListener<>() {\r\n"
            "  public void doFinally(SignalType terminationType) {\r\n"
            "    call(a,\r\n"
            "        b);\r\n"
            "  }\r\n"
            "})"
        )
