"""SpawnAgent, ReadFile, Table and attribute spreads."""
from __future__ import annotations

import logging

import pytest

from agentdoc.core.exceptions import (
    InvalidAttributeValueError,
    InvalidIdentifierError,
    MalformedSpreadSourceError,
    MissingRequiredAttributeError,
    MutuallyExclusiveAttributesError,
    TypeContractViolationError,
)
from helpers.sources import body_of, command

PRELUDE = """
    interface ReviewInput { file: string; focus?: string }
    interface Ctx { focus: string }
    const ctx = useScriptVar<Ctx>("CTX");
    const payload = useScriptVar<ReviewInput>("PAYLOAD");
    const result = useScriptVar<string>("RESULT");
    const plan = useScriptVar<string>("PLAN");
"""

TASK_CHECK_IT = "\n".join([
    "```",
    "Task(",
    '  prompt="Check it",',
    '  subagent_type="reviewer",',
    '  model="sonnet",',
    '  description="Review"',
    ")",
    "```",
])


@pytest.fixture
def body(compile_md):
    def _body(content: str, prelude: str = PRELUDE) -> str:
        return body_of(compile_md(command(content, prelude=prelude)))

    return _body


class TestSpawnAgent:
    def test_prompt(self, body) -> None:
        assert body('<SpawnAgent agent="reviewer" model="sonnet" description="Review" prompt="Check it" />') == TASK_CHECK_IT

    def test_children_are_extra_instructions(self, body) -> None:
        md = body('<SpawnAgent agent="a" model="m" description="d" prompt="Check it"><p>Be brief.</p></SpawnAgent>')
        assert '  prompt="Check it\n\nBe brief.",' in md

    def test_output_binding(self, body) -> None:
        md = body('<SpawnAgent agent="a" model="m" description="d" prompt="p" output={result} />')
        assert md.endswith("Store the agent's result in `$RESULT`.")

    def test_prompt_and_input_are_exclusive(self, body) -> None:
        with pytest.raises(MutuallyExclusiveAttributesError):
            body('<SpawnAgent agent="a" model="m" description="d" prompt="p" input={payload} />')

    def test_prompt_or_input_required(self, body) -> None:
        with pytest.raises(MissingRequiredAttributeError):
            body('<SpawnAgent agent="a" model="m" description="d" />')

    @pytest.mark.parametrize("missing", ["agent", "model", "description"])
    def test_required_attributes(self, body, missing: str) -> None:
        attrs = {"agent": "a", "model": "m", "description": "d"}
        attrs.pop(missing)
        rendered = " ".join(f'{k}="{v}"' for k, v in attrs.items())
        with pytest.raises(MissingRequiredAttributeError) as exc_info:
            body(f'<SpawnAgent {rendered} prompt="p" />')
        assert exc_info.value.attribute == missing

    def test_object_input(self, body) -> None:
        md = body(
            '<SpawnAgent<ReviewInput> agent="a" model="m" description="d" '
            'input={{ file: "src/a.py", focus: ctx.focus }} />'
        )
        assert '  prompt="<file>\nsrc/a.py\n</file>\n\n<focus>\n$CTX.focus\n</focus>",' in md

    def test_variable_input(self, body) -> None:
        md = body('<SpawnAgent<ReviewInput> agent="a" model="m" description="d" input={payload} />')
        assert '  prompt="<input>\n$PAYLOAD\n</input>",' in md

    def test_missing_required_input_field(self, body) -> None:
        with pytest.raises(TypeContractViolationError) as exc_info:
            body('<SpawnAgent<ReviewInput> agent="a" model="m" description="d" input={{ focus: "perf" }} />')
        assert exc_info.value.missing == ["file"]
        assert exc_info.value.type_name == "ReviewInput"

    def test_optional_input_field_may_be_omitted(self, body) -> None:
        md = body('<SpawnAgent<ReviewInput> agent="a" model="m" description="d" input={{ file: "x" }} />')
        assert '  prompt="<file>\nx\n</file>",' in md

    def test_every_missing_field_is_listed(self, body) -> None:
        prelude = PRELUDE + "\ninterface In { a: string; b: number; c?: string }"
        with pytest.raises(TypeContractViolationError) as exc_info:
            body('<SpawnAgent<In> agent="a" model="m" description="d" input={{ c: "z" }} />', prelude=prelude)
        assert exc_info.value.missing == ["a", "b"]
        assert "missing required field(s) of In: a, b" in str(exc_info.value)

    def test_unknown_input_type_only_warns(self, body, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="agentdoc.core.compiler.orchestration"):
            md = body('<SpawnAgent<Unknown> agent="a" model="m" description="d" input={{ x: "1" }} />')
        assert "<x>\n1\n</x>" in md
        assert any("Unknown" in r.getMessage() for r in caplog.records)

    def test_string_input_rejected(self, body) -> None:
        with pytest.raises(InvalidAttributeValueError):
            body('<SpawnAgent agent="a" model="m" description="d" input="raw text" />')

    def test_output_must_be_script_variable(self, body) -> None:
        with pytest.raises(InvalidAttributeValueError):
            body('<SpawnAgent agent="a" model="m" description="d" prompt="p" output="RESULT" />')


class TestReadFile:
    def test_read_file(self, body) -> None:
        assert body('<ReadFile path="docs/plan.md" as="PLAN" />') == "```bash\nPLAN=$(cat docs/plan.md)\n```"

    def test_optional_path_with_spaces(self, body) -> None:
        md = body('<ReadFile path="my docs/x.md" as="DOC" optional />')
        assert md == '```bash\nDOC=$(cat "my docs/x.md" 2>/dev/null)\n```'

    def test_script_variable_target(self, body) -> None:
        assert body('<ReadFile path="p.md" as={plan} />') == "```bash\nPLAN=$(cat p.md)\n```"

    def test_invalid_variable_name(self, body) -> None:
        with pytest.raises(InvalidIdentifierError):
            body('<ReadFile path="p.md" as="1BAD" />')

    @pytest.mark.parametrize("source", ['<ReadFile as="X" />', '<ReadFile path="p.md" />'])
    def test_missing_attributes(self, body, source: str) -> None:
        with pytest.raises(MissingRequiredAttributeError):
            body(source)


class TestTable:
    def test_table_with_empty_cells(self, body) -> None:
        md = body('<Table headers={["A", "B"]} rows={[["1", "2"], ["3"]]} emptyCell="-" />')
        assert md == "| A | B |\n| --- | --- |\n| 1 | 2 |\n| 3 | - |"

    def test_numbers_and_alignment(self, body) -> None:
        md = body('<Table headers={["N", "Score"]} rows={[["x", 1.0]]} align={["left", "right"]} />')
        assert md == "| N | Score |\n| :--- | ---: |\n| x | 1 |"

    def test_empty_table_is_dropped(self, body) -> None:
        assert body("<p>before</p>\n<Table />\n<p>after</p>") == "before\n\nafter"

    def test_invalid_alignment(self, body) -> None:
        with pytest.raises(InvalidAttributeValueError):
            body('<Table headers={["A"]} align={["middle"]} />')

    def test_rows_must_be_arrays(self, body) -> None:
        with pytest.raises(InvalidAttributeValueError):
            body('<Table headers={["A"]} rows={["flat"]} />')


class TestSpreads:
    def test_spread_supplies_attributes(self, body) -> None:
        prelude = PRELUDE + '\nconst common = { agent: "reviewer", model: "sonnet" };'
        md = body('<SpawnAgent {...common} description="Review" prompt="Check it" />', prelude=prelude)
        assert md == TASK_CHECK_IT

    def test_later_attribute_wins(self, body) -> None:
        prelude = PRELUDE + '\nconst overrides = { path: "b.md", as: "B" };'
        md = body('<ReadFile path="a.md" as="A" {...overrides} />', prelude=prelude)
        assert md == "```bash\nB=$(cat b.md)\n```"

    def test_explicit_attribute_after_spread_wins(self, body) -> None:
        prelude = PRELUDE + '\nconst defaults = { path: "a.md", as: "A" };'
        md = body('<ReadFile {...defaults} as="C" />', prelude=prelude)
        assert md == "```bash\nC=$(cat a.md)\n```"

    @pytest.mark.parametrize(
        "spread, extra",
        [
            ("{...getAttrs()}", ""),
            ("{...notObject}", 'const notObject = "x";'),
            ("{...undeclared}", ""),
        ],
    )
    def test_malformed_spread_sources(self, body, spread: str, extra: str) -> None:
        with pytest.raises(MalformedSpreadSourceError):
            body(f'<XmlBlock name="x" {spread}><p>y</p></XmlBlock>', prelude=PRELUDE + "\n" + extra)
