"""A small command/agent project shared by the integration tests."""

SECTION = """
    export function Section({ title, children }) {
      return (
        <>
          <h2>{title}</h2>
          {children}
        </>
      );
    }
"""

TYPES = """
    export interface ReviewInput {
      branch: string;
      focus?: string;
    }
"""

REVIEW = """
    import { Section } from "../shared/section";
    import type { ReviewInput } from "../shared/types";

    interface Ctx { branch: string; files: number; ready: boolean }

    const ctx = useScriptVar<Ctx>("CTX");
    const verdict = useScriptVar<string>("VERDICT");

    const TOOLS = ["Read", "Grep", "Task"];

    export default function Review() {
      return (
        <Command name="review" description="Review the current branch" allowedTools={TOOLS} folder="quality">
          <Section title="Context">
            <p>Branch: {ctx.branch} ({ctx.files} files)</p>
            <ReadFile path=".review/plan.md" as="PLAN" optional />
          </Section>
          <Section title="Review">
            <If condition={ctx.ready}>
              <SpawnAgent<ReviewInput>
                agent="reviewer"
                model="sonnet"
                description="Review changes"
                input={{ branch: ctx.branch, focus: "correctness" }}
              />
            </If>
            <Else>
              <Return status="BLOCKED" message="Nothing to review" />
            </Else>
          </Section>
          <AskUser
            question="Ship it?"
            options={[
              { value: "ship", label: "Ship" },
              { value: "hold", label: "Hold", description: "Wait for fixes" },
            ]}
            output={verdict}
          />
        </Command>
      );
    }
"""

CHECKER = """
    interface CheckInput { path: string }
    interface CheckResult { status: string; issues: string[] }

    export default function Checker() {
      return (
        <Agent<CheckInput, CheckResult> name="checker" description="Checks files" tools="Read, Grep" folder="quality">
          <XmlBlock name="role">
            <p>You check files for issues.</p>
          </XmlBlock>
        </Agent>
      );
    }
"""

HELLO = """
    export default () => (
      <Command name="hello" description="Say hello">
        <p>Hello <b>world</b>.</p>
      </Command>
    );
"""

BROKEN = """
    export default () => (
      <Command description="No name">
        <p>x</p>
      </Command>
    );
"""

PROJECT = {
    "shared/section.tsx": SECTION,
    "shared/types.ts": TYPES,
    "commands/review.tsx": REVIEW,
    "agents/checker.tsx": CHECKER,
    "commands/hello.tsx": HELLO,
}

REVIEW_MD = "\n".join([
    "---",
    "name: review",
    "description: Review the current branch",
    "allowed-tools:",
    "- Read",
    "- Grep",
    "- Task",
    "---",
    "",
    "## Context",
    "",
    "Branch: $CTX.branch ($CTX.files files)",
    "",
    "```bash",
    "PLAN=$(cat .review/plan.md 2>/dev/null)",
    "```",
    "",
    "## Review",
    "",
    "**If $CTX.ready:**",
    "",
    "```",
    "Task(",
    '  prompt="<branch>',
    "$CTX.branch",
    "</branch>",
    "",
    "<focus>",
    "correctness",
    '</focus>",',
    '  subagent_type="reviewer",',
    '  model="sonnet",',
    '  description="Review changes"',
    ")",
    "```",
    "",
    "**Otherwise:**",
    "",
    "**End command (BLOCKED)**: Nothing to review",
    "",
    "Use the AskUserQuestion tool:",
    "",
    '- Question: "Ship it?"',
    "- Options:",
    '  - "Ship" (value: "ship")',
    '  - "Hold" (value: "hold") - Wait for fixes',
    "",
    "Store the user's response in `$VERDICT`.",
    "",
])

CHECKER_MD = "\n".join([
    "---",
    "name: checker",
    "description: Checks files",
    "tools: Read, Grep",
    "---",
    "",
    "<role>",
    "You check files for issues.",
    "</role>",
    "",
    "<structured_returns>",
    "## Output Format",
    "",
    "Return a YAML code block with the following structure:",
    "",
    "```yaml",
    "status: SUCCESS | BLOCKED | NOT_FOUND | ERROR | CHECKPOINT",
    "issues: [...]",
    "```",
    "",
    "### Status Codes",
    "",
    "- **SUCCESS**: Task completed successfully",
    "- **BLOCKED**: Cannot proceed, needs external input",
    "- **NOT_FOUND**: Requested resource not found",
    "- **ERROR**: Execution error occurred",
    "- **CHECKPOINT**: Milestone reached, pausing for verification",
    "</structured_returns>",
    "",
])

HELLO_MD = "---\nname: hello\ndescription: Say hello\n---\n\nHello **world**.\n"
