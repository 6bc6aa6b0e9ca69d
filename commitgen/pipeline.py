"""Commit Pipeline - Wire the components together for one invocation.

    staged changes -> DiffBundle -> AssembledPrompt -> GenerationResult

Each call to `prepare()` / `generate()` starts from scratch; nothing is
carried over from a previous invocation.
"""

from dataclasses import dataclass
from pathlib import Path

from commitgen.config import Config
from commitgen.git import ChunkBudgeter, DiffBundle, DiffClassifier, DiffCollector
from commitgen.llm import Branch, GenerationOrchestrator, GenerationResult, get_client
from commitgen.llm.orchestrator import UpdateCallback
from commitgen.prompts import AssembledPrompt, PromptAssembler, build_system_prompt, load_project_info


@dataclass(frozen=True)
class PreparedChanges:
    bundle: DiffBundle
    prompt: AssembledPrompt


class CommitPipeline:
    """Collect, budget and assemble staged changes, then generate options."""

    def __init__(self, config: Config, collector: DiffCollector | None = None):
        self.config = config
        self.collector = collector or DiffCollector(max_diff_bytes=config.max_diff_bytes)
        self.budgeter = ChunkBudgeter(
            limits=config.budget_limits(),
            classifier=DiffClassifier(config.truncation_policy()),
        )
        self.assembler = PromptAssembler()

    def prepare(self, hint: str | None = None) -> PreparedChanges | None:
        """Return None when nothing is staged. Raises CollectionError."""
        bundle = self.budgeter.build(self.collector)
        if bundle is None:
            return None
        project = load_project_info(self.collector.root)
        prompt = self.assembler.assemble(bundle, project=project, hint=hint)
        return PreparedChanges(bundle=bundle, prompt=prompt)

    def build_branches(self) -> list[Branch]:
        """One branch per configured backend. Raises LLMError on bad client config."""
        return [
            Branch(
                name=backend.name,
                client=get_client(backend),
                system_prompt=build_system_prompt(backend.role, self.config.language),
            )
            for backend in self.config.backends()
        ]

    def generate(self, prompt: AssembledPrompt, on_update: UpdateCallback | None = None,
                 branches: list[Branch] | None = None) -> GenerationResult:
        """Fresh branches per call unless prebuilt ones are passed in."""
        orchestrator = GenerationOrchestrator(branches if branches is not None else self.build_branches())
        return orchestrator.run(prompt, on_update)

    def apply(self, message: str) -> Path:
        """Write the chosen message into the repository's pending commit message."""
        return self.collector.write_commit_message(message)
