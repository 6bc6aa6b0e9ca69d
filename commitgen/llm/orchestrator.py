"""Generation Orchestrator - Fan one prompt out to every backend concurrently."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from commitgen.llm.base import CommitOption, LLMClient, LLMError, LLMResponse
from commitgen.llm.parser import ResponseParser
from commitgen.llm.sorting import sort_options
from commitgen.prompts import AssembledPrompt

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[CommitOption]], None]


@dataclass(frozen=True)
class GenerationRequest:
    """One branch's input. `prompt` is shared verbatim by all branches."""
    prompt: str
    metadata: str
    backend: str


@dataclass(frozen=True)
class Branch:
    """A configured backend: client plus its role's system prompt."""
    name: str
    client: LLMClient
    system_prompt: str


class OutcomeKind(str, Enum):
    OK = 'ok'
    GENERATION_FAILURE = 'generation_failure'
    PARSE_FAILURE = 'parse_failure'


@dataclass
class BranchOutcome:
    backend: str
    kind: OutcomeKind
    options: list[CommitOption] = field(default_factory=list)
    error: str | None = None
    tokens_used: int = 0


class ResultStatus(str, Enum):
    COMPLETE = 'complete'
    PARTIAL = 'partial'
    FAILED = 'failed'


class GenerationResult:
    """Accumulator for one invocation.

    Options are merged in backend order before sorting, so the published list
    does not depend on which branch finished first.
    """

    def __init__(self, backends: Sequence[str]):
        self._backends = list(backends)
        self._outcomes: dict[str, BranchOutcome] = {}
        self._lock = threading.Lock()

    def record(self, outcome: BranchOutcome) -> list[CommitOption]:
        """Store a settled branch and return the current sorted options."""
        with self._lock:
            self._outcomes[outcome.backend] = outcome
            return self._merged()

    def _merged(self) -> list[CommitOption]:
        merged = [
            option
            for name in self._backends if name in self._outcomes
            for option in self._outcomes[name].options
        ]
        return sort_options(merged)

    @property
    def options(self) -> list[CommitOption]:
        with self._lock:
            return self._merged()

    @property
    def outcomes(self) -> list[BranchOutcome]:
        with self._lock:
            return [self._outcomes[name] for name in self._backends if name in self._outcomes]

    @property
    def settled(self) -> bool:
        with self._lock:
            return all(name in self._outcomes for name in self._backends)

    @property
    def failed_backends(self) -> list[str]:
        return [o.backend for o in self.outcomes if o.kind is not OutcomeKind.OK]

    @property
    def status(self) -> ResultStatus:
        if not self.options:
            return ResultStatus.FAILED
        if self.failed_backends:
            return ResultStatus.PARTIAL
        return ResultStatus.COMPLETE


class GenerationOrchestrator:
    """Runs one request per branch and publishes merged results as they land."""

    def __init__(self, branches: Sequence[Branch], parser: ResponseParser | None = None):
        if not branches:
            raise ValueError("At least one backend is required")
        names = [branch.name for branch in branches]
        if len(set(names)) != len(names):
            raise ValueError(f"Backend names must be unique: {names}")
        self.branches = list(branches)
        self.parser = parser or ResponseParser()

    def run(self, prompt: AssembledPrompt, on_update: UpdateCallback | None = None) -> GenerationResult:
        """Block until every branch settles; never raises for branch failures.

        `on_update` is called on this thread after each branch, with the
        sorted options gathered so far.
        """
        result = GenerationResult([branch.name for branch in self.branches])
        requests = [
            GenerationRequest(prompt=prompt.text, metadata=prompt.metadata, backend=branch.name)
            for branch in self.branches
        ]

        with ThreadPoolExecutor(max_workers=len(self.branches), thread_name_prefix='commitgen') as executor:
            futures = {
                executor.submit(self._request, branch, request): branch
                for branch, request in zip(self.branches, requests)
            }
            for future in as_completed(futures):
                outcome = self._settle(futures[future], future)
                options = result.record(outcome)
                if on_update is not None:
                    on_update(options)

        if result.status is ResultStatus.FAILED:
            logger.error("All %d backends failed to produce options", len(self.branches))
        return result

    def _request(self, branch: Branch, request: GenerationRequest) -> LLMResponse:
        logger.debug("Requesting %s (%d chars)", request.backend, len(request.prompt))
        return branch.client.generate(branch.system_prompt, request.prompt)

    def _settle(self, branch: Branch, future: Future) -> BranchOutcome:
        try:
            response = future.result()
        except LLMError as e:
            logger.error("Generation failure on %s: %s", branch.name, e)
            return BranchOutcome(branch.name, OutcomeKind.GENERATION_FAILURE, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error on %s", branch.name)
            return BranchOutcome(branch.name, OutcomeKind.GENERATION_FAILURE, error=f"{type(e).__name__}: {e}")

        options = self.parser.parse(response.content, source=branch.name)
        if not options:
            return BranchOutcome(
                branch.name, OutcomeKind.PARSE_FAILURE,
                error="response contained no valid options", tokens_used=response.tokens_used,
            )
        logger.debug("%s returned %d options", branch.name, len(options))
        return BranchOutcome(branch.name, OutcomeKind.OK, options=options, tokens_used=response.tokens_used)
