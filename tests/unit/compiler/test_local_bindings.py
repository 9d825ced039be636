"""Bindings declared inside function bodies and inline render functions."""
from __future__ import annotations

import pytest

from agentdoc.core.exceptions import CircularReferenceError, UnsupportedExpressionError
from helpers.sources import body_of, command

CTX_TYPE = "interface Ctx { status: { phase: string }; error: string }"
LOCAL_CTX = 'const ctx = useScriptVar<Ctx>("CTX");'


@pytest.fixture
def body(compile_md):
    def _body(content: str, setup: str = LOCAL_CTX, prelude: str = CTX_TYPE) -> str:
        return body_of(compile_md(command(content, prelude=prelude, setup=setup)))

    return _body


class TestFunctionLocals:
    def test_script_variable_member_access(self, body) -> None:
        assert body("<p>Phase: {ctx.status.phase}</p>") == "Phase: $CTX.status.phase"

    def test_script_variable_condition(self, body) -> None:
        assert body("<If condition={ctx.error}><p>Stop</p></If>") == "**If $CTX.error:**\n\nStop"

    def test_runtime_variable(self, body) -> None:
        setup = 'const out = useRuntimeVar<string>("OUT");'
        assert body("<p>Got {out}</p>", setup=setup) == "Got $OUT"

    def test_runtime_function(self, body) -> None:
        setup = "const check = runtimeFn(runChecks);"
        assert body("<p>Call {check.call}</p>", setup=setup) == "Call runChecks()"

    def test_constant(self, body) -> None:
        assert body("<p>Use {tool}</p>", setup='const tool = "Grep";') == "Use Grep"

    def test_local_shadows_module_constant(self, body) -> None:
        md = body("<p>Use {tool}</p>", setup='const tool = "Glob";', prelude='const tool = "Grep";')
        assert md == "Use Glob"

    def test_local_refers_to_other_local(self, body) -> None:
        setup = """
            const name = "lint";
            const label = `run ${name}`;
        """
        assert body("<p>{label}</p>", setup=setup) == "run lint"

    def test_local_spread(self, body) -> None:
        setup = 'const link = { href: "https://x.dev/docs" };'
        assert body("<p><a {...link}>docs</a></p>", setup=setup) == "[docs](https://x.dev/docs)"

    def test_self_referencing_local(self, body) -> None:
        with pytest.raises(UnsupportedExpressionError):
            body("<p>{loop}</p>", setup="const loop = loop;")

    def test_statements_before_return_are_ignored(self, body) -> None:
        setup = """
            const ctx = useScriptVar<Ctx>("CTX");
            console.log("building");
        """
        assert body("<p>{ctx.error}</p>", setup=setup) == "$CTX.error"


class TestCompositeLocals:
    def test_local_derived_from_prop(self, body) -> None:
        prelude = """
            function Step({ title }) {
              const heading = `Step: ${title}`;
              return <h2>{heading}</h2>;
            }
        """
        assert body('<Step title="Build" />', setup="", prelude=prelude) == "## Step: Build"

    def test_script_variable_in_composite(self, body) -> None:
        prelude = CTX_TYPE + """
            const Status = () => {
              const ctx = useScriptVar<Ctx>("CTX");
              return <p>Now: {ctx.status.phase}</p>;
            };
        """
        assert body("<Status />", setup="", prelude=prelude) == "Now: $CTX.status.phase"

    def test_locals_do_not_leak_into_children(self, body) -> None:
        prelude = """
            const Box = ({ children }) => {
              const tool = "inner";
              return <>{children}</>;
            };
        """
        md = body("<Box><p>{tool}</p></Box>", setup='const tool = "outer";', prelude=prelude)
        assert md == "outer"


class TestRenderFunctions:
    def test_render_prop_child(self, body) -> None:
        content = """
            {() => {
              const ctx = useRuntimeVar<Ctx>("CTX");
              return (
                <>
                  <p>Phase: {ctx.status.phase}</p>
                </>
              );
            }}
        """
        assert body(content, setup="") == "Phase: $CTX.status.phase"

    def test_expression_bodied_render_function(self, body) -> None:
        assert body("{() => <p>inline</p>}", setup="") == "inline"

    def test_render_function_sees_enclosing_locals(self, body) -> None:
        assert body("{() => <p>{ctx.error}</p>}") == "$CTX.error"

    def test_render_function_without_jsx(self, body) -> None:
        with pytest.raises(UnsupportedExpressionError) as exc_info:
            body("{() => { return 1; }}", setup="")
        assert "inline functions must return JSX" in str(exc_info.value)


class TestDefaultExportedElement:
    def test_default_export_of_jsx(self, compile_tsx) -> None:
        source = """
            interface Ctx { status: { phase: string } }

            export default (
              <Command name="c" description="d">
                {() => {
                  const ctx = useScriptVar<Ctx>("CTX");
                  return (
                    <>
                      <h1>Status</h1>
                      <p>{ctx.status.phase}</p>
                    </>
                  );
                }}
              </Command>
            );
        """
        result = compile_tsx(source)
        assert result.document_type == "command"
        assert result.markdown.startswith("---\nname: c\ndescription: d\n---\n")
        assert body_of(result.markdown) == "# Status\n\n$CTX.status.phase"

    def test_default_export_without_parentheses(self, compile_md) -> None:
        md = compile_md('export default <Command name="c" description="d"><p>hi</p></Command>;')
        assert body_of(md) == "hi"

    def test_cycle_through_render_function(self, compile_md) -> None:
        source = """
            const Loop = () => <>{() => <Loop />}</>;

            export default (
              <Command name="c" description="d">
                <Loop />
              </Command>
            );
        """
        with pytest.raises(CircularReferenceError):
            compile_md(source)
