"""Tests for the tree-sitter source provider: declarations and the neutral tree."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from agentdoc.core.exceptions import SourceParseError
from agentdoc.core.source import (
    Attribute,
    Call,
    Element,
    ExpressionContainer,
    FunctionValue,
    Identifier,
    JsxText,
    Literal,
    MemberAccess,
    ObjectLiteral,
    SpreadAttribute,
    TemplateLiteral,
    load_unit,
    parse_source,
)


def _parse(text: str, path=None):
    return parse_source(textwrap.dedent(text), path)


class TestDeclarations:
    def test_imports(self) -> None:
        unit = _parse(
            """
            import Default, { Step as S, Other } from "./parts";
            import type { Ctx } from "./types";
            import * as UI from "./ui";
            """
        )
        assert unit.imports["Default"].imported == "default"
        assert unit.imports["S"].imported == "Step"
        assert unit.imports["S"].module == "./parts"
        assert unit.imports["Other"].imported == "Other"
        assert unit.imports["Ctx"].type_only is True
        assert unit.imports["UI"].imported == "*"
        assert unit.imports["S"].is_relative

    def test_components_and_exports(self) -> None:
        unit = _parse(
            """
            export const Step = ({ title, level = 2 }) => <h2>{title}</h2>;
            function Helper(props) { return <p>{props.text}</p>; }
            export default function Doc() {
              return <Command name="x" description="y" />;
            }
            """
        )
        assert set(unit.components) == {"Step", "Helper", "Doc"}
        assert unit.exports["Step"] == "Step"
        assert unit.exports["default"] == "Doc"
        assert "Helper" not in unit.exports

        step = unit.components["Step"].params
        assert [name for name, _ in step.bindings] == ["title", "level"]
        assert dict(step.bindings)["level"].default == Literal(text="2", value=2)
        assert unit.components["Helper"].params.name == "props"

    def test_export_clause_with_alias(self) -> None:
        unit = _parse(
            """
            const Inner = () => <p>x</p>;
            export { Inner as Outer };
            """
        )
        assert unit.exports == {"Outer": "Inner"}
        assert unit.exported_component("Outer").name == "Inner"

    def test_variables(self) -> None:
        unit = _parse(
            """
            const common = { model: "sonnet", retries: 3 };
            let counter = 1;
            """
        )
        assert isinstance(unit.variables["common"].init, ObjectLiteral)
        assert unit.variables["common"].init.keys() == ("model", "retries")
        assert unit.variables["counter"].constant is False

    def test_interfaces_and_type_aliases(self) -> None:
        unit = _parse(
            """
            interface Base { id: string }
            export interface Input extends Base {
              file: string;
              focus?: string;
            }
            type Output = { summary: string; count?: number };
            """
        )
        input_decl = unit.interfaces["Input"]
        assert input_decl.bases == ("Base",)
        assert [(p.name, p.required, p.type_text) for p in input_decl.properties] == [
            ("file", True, "string"),
            ("focus", False, "string"),
        ]
        assert [p.name for p in unit.interfaces["Output"].properties] == ["summary", "count"]
        assert unit.exports["Input"] == "Input"


class TestRootSelection:
    def test_default_export_wins(self) -> None:
        unit = _parse(
            """
            const A = () => <Command name="a" description="a" />;
            export default function B() { return <p>b</p>; }
            """
        )
        assert unit.root.tag == "p"

    def test_first_document_root_without_default(self) -> None:
        unit = _parse(
            """
            const Part = () => <p>part</p>;
            const Doc = () => <Agent name="a" description="d" />;
            """
        )
        assert unit.root.tag == "Agent"

    def test_no_jsx_means_no_root(self) -> None:
        assert _parse("const x = 1;").root is None

    def test_default_exported_element(self) -> None:
        unit = _parse(
            """
            const Part = () => <Agent name="a" description="d" />;
            export default (
              <Command name="c" description="d">
                <p>hi</p>
              </Command>
            );
            """
        )
        assert unit.root.tag == "Command"
        assert unit.owner(unit.root) is None

    def test_owner_of_component_root(self) -> None:
        unit = _parse("export default function Doc() { return <p>x</p>; }")
        assert unit.owner(unit.root) is unit.components["Doc"]


class TestComponentTree:
    def test_text_keeps_source_whitespace_and_decodes_entities(self) -> None:
        unit = _parse('const A = () => <p>Fish &amp; chips{" "}<b>now</b>\n  later</p>;')
        children = unit.root.children

        assert children[0] == JsxText("Fish & chips")
        assert isinstance(children[1], ExpressionContainer)
        assert children[1].expression.value == " "
        assert isinstance(children[2], Element) and children[2].tag == "b"
        assert children[3] == JsxText("\n  later")

    def test_attribute_shapes(self) -> None:
        unit = _parse(
            'const A = () => <SpawnAgent agent="a" optional max={3} input={{ a: ctx.x }} {...common} />;'
        )
        attrs = unit.root.attributes

        assert attrs[0] == Attribute("agent", Literal(text='"a"', value="a"))
        assert attrs[1] == Attribute("optional", None)
        assert attrs[2].value.value == 3
        entry = attrs[3].value.entries[0]
        assert entry.key == "a"
        assert isinstance(entry.value, MemberAccess) and entry.value.member == "x"
        assert isinstance(attrs[4], SpreadAttribute)
        assert attrs[4].expression == Identifier(text="common", name="common")

    def test_template_literal_parts(self) -> None:
        unit = _parse("const A = () => <p>{`Run ${cmd} now`}</p>;")
        expr = unit.root.children[0].expression

        assert isinstance(expr, TemplateLiteral)
        assert expr.parts[0] == "Run "
        assert expr.parts[1] == Identifier(text="cmd", name="cmd")
        assert expr.parts[2] == " now"

    def test_fragment_and_namespaced_tag(self) -> None:
        unit = _parse("const A = () => <><UI.Note /></>;")

        assert unit.root.tag is None
        assert unit.root.children[0].tag == "UI.Note"

    def test_element_type_arguments(self) -> None:
        unit = _parse(
            'const A = () => <SpawnAgent<ReviewInput> agent="a" model="m" description="d" prompt="p" />;'
        )
        assert unit.root.type_arguments == ("ReviewInput",)

    def test_locations_are_one_based(self) -> None:
        unit = _parse("const A = () => (\n  <p>x</p>\n);", path="doc.tsx")
        loc = unit.root.location

        assert (loc.line, loc.column) == (2, 3)
        assert str(loc) == "doc.tsx:2:3"


class TestLoading:
    def test_load_unit_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.tsx"
        path.write_text("export default () => <p>hi</p>;", encoding="utf-8")

        unit = load_unit(path)

        assert unit.path == path.resolve()
        assert unit.root.tag == "p"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SourceParseError):
            load_unit(tmp_path / "missing.tsx")


class TestFunctionBodies:
    def test_component_locals_in_source_order(self) -> None:
        unit = _parse(
            """
            function Doc() {
              const ctx = useScriptVar<Ctx>("CTX");
              let label = "x", count = 2;
              const { a } = props;
              return <p>{label}</p>;
            }
            """
        )
        decl = unit.components["Doc"]
        assert [name for name, _ in decl.locals] == ["ctx", "label", "count"]
        assert isinstance(decl.locals[0][1], Call)
        assert decl.locals[1][1].value == "x"

    def test_declarations_after_return_are_ignored(self) -> None:
        unit = _parse("function Doc() { const a = 1; return <p />; const b = 2; }")
        assert [name for name, _ in unit.components["Doc"].locals] == ["a"]

    def test_arrow_child_becomes_function_value(self) -> None:
        unit = _parse(
            """
            const A = () => (
              <Command name="c" description="d">
                {() => {
                  const ctx = useRuntimeVar<Ctx>("CTX");
                  return <p>{ctx.x}</p>;
                }}
              </Command>
            );
            """
        )
        (expr,) = [c.expression for c in unit.root.children if isinstance(c, ExpressionContainer)]

        assert isinstance(expr, FunctionValue)
        assert expr.body.tag == "p"
        assert [name for name, _ in expr.locals] == ["ctx"]

    def test_function_without_jsx_has_no_body(self) -> None:
        unit = _parse("const A = () => <p>{() => 1}</p>;")
        expr = unit.root.children[0].expression

        assert isinstance(expr, FunctionValue)
        assert expr.body is None
