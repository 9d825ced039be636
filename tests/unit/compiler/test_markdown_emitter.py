"""Tests for the Markdown emitter, driven directly from IR nodes."""
from __future__ import annotations

import pytest

from agentdoc.core.compiler.emitter import MarkdownEmitter, emit, fence_for
from agentdoc.core.exceptions import InternalConsistencyError
from agentdoc.core.ir import (
    AgentFrontmatter,
    AskUser,
    AskUserOption,
    Blockquote,
    Bold,
    Break,
    CodeBlock,
    CommandFrontmatter,
    Conditional,
    DocumentNode,
    FunctionRef,
    Heading,
    InlineCode,
    InputProperty,
    Italic,
    LineBreak,
    Link,
    ListItem,
    ListNode,
    Loop,
    Paragraph,
    RawMarkdown,
    ReadFile,
    Return,
    ScriptVarRef,
    SpawnAgent,
    Table,
    Text,
    ThematicBreak,
    XmlBlock,
)


def _p(*children) -> Paragraph:
    return Paragraph(tuple(Text(c) if isinstance(c, str) else c for c in children))


def _item(*blocks) -> ListItem:
    return ListItem(tuple(blocks))


@pytest.fixture
def emitter() -> MarkdownEmitter:
    return MarkdownEmitter()


class TestDocument:
    def test_empty_document_is_empty_string(self, emitter: MarkdownEmitter) -> None:
        assert emitter.emit(DocumentNode()) == ""

    def test_frontmatter_then_body_single_trailing_newline(self, emitter: MarkdownEmitter) -> None:
        doc = DocumentNode(
            frontmatter=CommandFrontmatter("analyze", "Analyze code", allowed_tools=("Read", "Grep")),
            body=(Heading(1, (Text("Steps"),)), _p("Do X.")),
        )
        assert emitter.emit(doc) == (
            "---\n"
            "name: analyze\n"
            "description: Analyze code\n"
            "allowed-tools:\n"
            "- Read\n"
            "- Grep\n"
            "---\n"
            "\n"
            "# Steps\n"
            "\n"
            "Do X.\n"
        )

    def test_agent_frontmatter_only(self, emitter: MarkdownEmitter) -> None:
        doc = DocumentNode(frontmatter=AgentFrontmatter("reviewer", "Reviews", tools="Read, Grep", color="blue"))
        assert emitter.emit(doc) == "---\nname: reviewer\ndescription: Reviews\ntools: Read, Grep\ncolor: blue\n---\n"

    def test_module_level_emit(self) -> None:
        assert emit(DocumentNode(body=(ThematicBreak(),))) == "---\n"

    def test_unknown_kind_raises(self, emitter: MarkdownEmitter) -> None:
        class Stray:
            kind = "stray"

        with pytest.raises(InternalConsistencyError):
            emitter.block(Stray())
        with pytest.raises(InternalConsistencyError):
            emitter.inline(Stray())


class TestHeadings:
    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_levels(self, emitter: MarkdownEmitter, level: int) -> None:
        assert emitter.block(Heading(level, (Text("Title"),))) == "#" * level + " Title"

    def test_line_break_keeps_heading_on_one_line(self, emitter: MarkdownEmitter) -> None:
        node = Heading(2, (Text("Part one"), LineBreak(), Text("part two")))
        assert emitter.block(node) == "## Part one<br>part two"

    def test_line_break_after_heading_is_newline_again(self, emitter: MarkdownEmitter) -> None:
        emitter.block(Heading(1, (Text("a"), LineBreak(), Text("b"))))
        assert emitter.block(_p("c", LineBreak(), "d")) == "c\nd"


class TestInlineSpacing:
    def test_space_between_text_and_formatting(self, emitter: MarkdownEmitter) -> None:
        para = _p("Use", Bold((Text("bold"),)), "here.")
        assert emitter.block(para) == "Use **bold** here."

    def test_no_space_before_punctuation(self, emitter: MarkdownEmitter) -> None:
        para = _p(Bold((Text("Note"),)), ": read this")
        assert emitter.block(para) == "**Note**: read this"

    def test_no_space_inside_brackets(self, emitter: MarkdownEmitter) -> None:
        para = _p("(see", InlineCode("x"), ")")
        assert emitter.block(para) == "(see `x`)"

    def test_adjacent_formatting_nodes_are_separated(self, emitter: MarkdownEmitter) -> None:
        para = _p(Bold((Text("a"),)), Italic((Text("b"),)))
        assert emitter.block(para) == "**a** *b*"

    def test_runtime_references(self, emitter: MarkdownEmitter) -> None:
        para = _p("Status:", ScriptVarRef("CTX", ("status",)), "and", FunctionRef("check", call=True))
        assert emitter.block(para) == "Status: $CTX.status and check()"

    def test_line_break(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(_p("a", LineBreak(), "b")) == "a\nb"

    def test_link(self, emitter: MarkdownEmitter) -> None:
        assert emitter.inline(Link("https://x.dev", (Text("docs"),))) == "[docs](https://x.dev)"
        assert emitter.inline(Link("https://x.dev")) == "[https://x.dev](https://x.dev)"

    def test_inline_code_with_backticks(self, emitter: MarkdownEmitter) -> None:
        assert emitter.inline(InlineCode("a`b")) == "`` a`b ``"


class TestLists:
    def test_ordered_list_preserves_order(self, emitter: MarkdownEmitter) -> None:
        node = ListNode(True, (_item(_p("A")), _item(_p("B")), _item(_p("C"))))
        assert emitter.block(node) == "1. A\n2. B\n3. C"

    def test_ordered_list_start(self, emitter: MarkdownEmitter) -> None:
        node = ListNode(True, (_item(_p("A")), _item(_p("B"))), start=4)
        assert emitter.block(node) == "4. A\n5. B"

    def test_ordered_list_starting_at_zero(self, emitter: MarkdownEmitter) -> None:
        node = ListNode(True, (_item(_p("A")), _item(_p("B"))), start=0)
        assert emitter.block(node) == "0. A\n1. B"

    def test_nested_unordered_list_indents_one_level(self, emitter: MarkdownEmitter) -> None:
        inner = ListNode(False, (_item(_p("inner")),))
        outer = ListNode(False, (_item(_p("outer"), inner), _item(_p("next"))))
        assert emitter.block(outer) == "- outer\n  - inner\n- next"

    def test_nested_list_under_ordered_item_uses_marker_width(self, emitter: MarkdownEmitter) -> None:
        inner = ListNode(False, (_item(_p("inner")),))
        outer = ListNode(True, (_item(_p("outer"), inner),))
        assert emitter.block(outer) == "1. outer\n   - inner"

    def test_second_paragraph_in_item(self, emitter: MarkdownEmitter) -> None:
        node = ListNode(False, (_item(_p("first"), _p("second")),))
        assert emitter.block(node) == "- first\n\n  second"


class TestContentBlocks:
    def test_blockquote(self, emitter: MarkdownEmitter) -> None:
        node = Blockquote((_p("one"), _p("two")))
        assert emitter.block(node) == "> one\n>\n> two"

    def test_code_block(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(CodeBlock("echo hi", "bash")) == "```bash\necho hi\n```"

    def test_code_block_fence_grows(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(CodeBlock("```\nx\n```")) == "````\n```\nx\n```\n````"

    def test_fence_for(self) -> None:
        assert fence_for("plain") == "```"
        assert fence_for("a ```` b") == "`````"

    def test_xml_block(self, emitter: MarkdownEmitter) -> None:
        node = XmlBlock("context", (_p("Info"),), attributes=(("kind", 'say "hi"'),))
        assert emitter.block(node) == '<context kind="say &quot;hi&quot;">\nInfo\n</context>'

    def test_xml_attribute_markup_is_escaped(self, emitter: MarkdownEmitter) -> None:
        node = XmlBlock("rules", (_p("x"),), attributes=(("when", "a < b & c > d"),))
        assert emitter.block(node).startswith('<rules when="a &lt; b &amp; c &gt; d">')

    def test_empty_xml_block(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(XmlBlock("empty")) == "<empty>\n</empty>"

    def test_raw(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(RawMarkdown("## Raw\n*kept*")) == "## Raw\n*kept*"

    def test_thematic_break(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(ThematicBreak()) == "---"


class TestTable:
    def test_alignment_escaping_and_empty_cells(self, emitter: MarkdownEmitter) -> None:
        node = Table(
            headers=("Name", "Value", "Note"),
            rows=(("a|b", "1", ""), ("multi\nline", "2", "ok")),
            align=("left", "center", "right"),
            empty_cell="-",
        )
        assert emitter.block(node) == (
            "| Name | Value | Note |\n"
            "| :--- | :---: | ---: |\n"
            "| a\\|b | 1 | - |\n"
            "| multi<br>line | 2 | ok |"
        )

    def test_short_rows_are_padded(self, emitter: MarkdownEmitter) -> None:
        node = Table(headers=("A", "B"), rows=(("1",),))
        assert emitter.block(node) == "| A | B |\n| --- | --- |\n| 1 |  |"


class TestControlFlow:
    def test_conditional_with_otherwise(self, emitter: MarkdownEmitter) -> None:
        node = Conditional("$CTX.ready", (_p("Go"),), (_p("Stop"),))
        assert emitter.block(node) == "**If $CTX.ready:**\n\nGo\n\n**Otherwise:**\n\nStop"

    def test_loop_with_counter(self, emitter: MarkdownEmitter) -> None:
        node = Loop(3, (_p("Try"),), counter=ScriptVarRef("I"))
        assert emitter.block(node) == "**Loop up to 3 times (counter: $I):**\n\nTry"

    def test_break(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(Break()) == "**Break loop**"
        assert emitter.block(Break("done")) == "**Break loop:** done"

    def test_return(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(Return()) == "**End command**"
        assert emitter.block(Return("SUCCESS", "All good")) == "**End command (SUCCESS)**: All good"

    def test_ask_user(self, emitter: MarkdownEmitter) -> None:
        node = AskUser(
            question="Proceed?",
            options=(AskUserOption("yes", "Yes"), AskUserOption("no", "No", "Abort the run")),
            output=ScriptVarRef("ANSWER"),
            header="Confirm",
            multi_select=True,
        )
        assert emitter.block(node) == "\n".join([
            "Use the AskUserQuestion tool:",
            "",
            '- Question: "Proceed?"',
            '- Header: "Confirm"',
            "- Options:",
            '  - "Yes" (value: "yes")',
            '  - "No" (value: "no") - Abort the run',
            "- Multi-select: true (the user may choose several options)",
            "",
            "Store the user's response in `$ANSWER`.",
        ])


class TestOrchestration:
    def test_spawn_agent_with_prompt(self, emitter: MarkdownEmitter) -> None:
        node = SpawnAgent(agent="reviewer", model="sonnet", description="Review", prompt='Check "it"')
        assert emitter.block(node) == "\n".join([
            "```",
            "Task(",
            '  prompt="Check \\"it\\"",',
            '  subagent_type="reviewer",',
            '  model="sonnet",',
            '  description="Review"',
            ")",
            "```",
        ])

    def test_spawn_agent_with_object_input_and_output(self, emitter: MarkdownEmitter) -> None:
        node = SpawnAgent(
            agent="a",
            model="m",
            description="d",
            input=(InputProperty("file", "src/x.py"), InputProperty("ctx", ScriptVarRef("CTX", ("id",)))),
            extra_instructions="Be brief.",
            output=ScriptVarRef("RESULT"),
        )
        text = emitter.block(node)

        assert 'prompt="<file>\nsrc/x.py\n</file>\n\n<ctx>\n$CTX.id\n</ctx>\n\nBe brief.",' in text
        assert text.endswith("Store the agent's result in `$RESULT`.")

    def test_spawn_agent_with_variable_input(self, emitter: MarkdownEmitter) -> None:
        node = SpawnAgent(agent="a", model="m", description="d", input=ScriptVarRef("PAYLOAD"))
        assert 'prompt="<input>\n$PAYLOAD\n</input>",' in emitter.block(node)

    def test_read_file(self, emitter: MarkdownEmitter) -> None:
        assert emitter.block(ReadFile("docs/plan.md", "PLAN")) == "```bash\nPLAN=$(cat docs/plan.md)\n```"

    def test_read_file_optional_with_spaces(self, emitter: MarkdownEmitter) -> None:
        node = ReadFile("my docs/plan.md", "PLAN", optional=True)
        assert emitter.block(node) == '```bash\nPLAN=$(cat "my docs/plan.md" 2>/dev/null)\n```'

    def test_read_file_path_with_quote(self, emitter: MarkdownEmitter) -> None:
        node = ReadFile('say "hi".md', "NOTE")
        assert emitter.block(node) == '```bash\nNOTE=$(cat "say \\"hi\\".md")\n```'
