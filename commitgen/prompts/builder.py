"""Prompt Assembler - Build the payload shared by every backend request."""

from dataclasses import dataclass

from commitgen.git import DiffBundle
from commitgen.prompts.project import ProjectInfo


@dataclass(frozen=True)
class AssembledPrompt:
    """Immutable payload sent verbatim as the user message of every branch."""
    text: str
    metadata: str = ""
    file_count: int = 0
    degraded: bool = False

    @property
    def estimated_tokens(self) -> int:
        """Rough token estimate (~4 chars per token)."""
        return len(self.text) // 4


class PromptAssembler:
    """Concatenates budgeted entries and fixed context into one prompt."""

    def assemble(self, bundle: DiffBundle, project: ProjectInfo | None = None,
                 hint: str | None = None) -> AssembledPrompt:
        metadata = project.describe() if project else ""
        sections = [
            metadata,
            self._build_hint_section(hint),
            f"FILES CHANGED: {bundle.total_files}",
            self._build_changes_section(bundle),
        ]
        return AssembledPrompt(
            text="\n\n".join(filter(None, sections)),
            metadata=metadata,
            file_count=bundle.total_files,
            degraded=bundle.degraded,
        )

    def _build_hint_section(self, hint: str | None) -> str:
        if not hint:
            return ""
        return f"""<context>
The developer provided this context about the changes:
"{hint}"

Use this to inform your message, but verify it matches what you see in the diff.
</context>"""

    def _build_changes_section(self, bundle: DiffBundle) -> str:
        if bundle.degraded:
            return (
                f"{bundle.summary}\n\n"
                "[Note: The diff was too large to include. Only file names and line counts are shown.]"
            )
        return "\n".join(change.entry_text for change in bundle.changes)
