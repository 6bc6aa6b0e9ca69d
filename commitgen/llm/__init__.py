"""LLM Client Package"""

from commitgen.llm.base import BackendConfig, CommitOption, LLMClient, LLMError, LLMResponse
from commitgen.llm.chat_completions import ChatCompletionsClient
from commitgen.llm.claude import ClaudeClient
from commitgen.llm.orchestrator import (
    Branch, BranchOutcome, GenerationOrchestrator, GenerationRequest, GenerationResult,
    OutcomeKind, ResultStatus,
)
from commitgen.llm.parser import ResponseParser
from commitgen.llm.sorting import sort_options

PROVIDERS = ("openai", "claude")


def get_client(backend: BackendConfig) -> LLMClient:
    """Build the client for one configured backend."""
    if backend.provider == "openai":
        return ChatCompletionsClient(
            model=backend.model,
            api_key=backend.api_key,
            base_url=backend.base_url,
            timeout=backend.timeout,
        )
    if backend.provider == "claude":
        return ClaudeClient(model=backend.model, api_key=backend.api_key, timeout=backend.timeout)
    raise LLMError(f"Unknown provider: {backend.provider}. Use 'openai' or 'claude'.")


__all__ = [
    "BackendConfig",
    "Branch",
    "BranchOutcome",
    "ChatCompletionsClient",
    "ClaudeClient",
    "CommitOption",
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationResult",
    "LLMClient",
    "LLMError",
    "LLMResponse",
    "OutcomeKind",
    "PROVIDERS",
    "ResponseParser",
    "ResultStatus",
    "get_client",
    "sort_options",
]
