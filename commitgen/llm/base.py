"""LLM Base Classes and Shared Types"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class CommitOption:
    """One candidate commit message produced by a backend."""
    type: str
    description: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BackendConfig:
    """Everything needed to build one backend client."""
    name: str
    role: str
    model: str
    provider: str = "openai"
    base_url: str | None = None
    api_key: str | None = None
    timeout: int = 120


@dataclass
class LLMResponse:
    """Structured response from any LLM provider."""
    content: str
    model: str = ""
    tokens_used: int = 0


class LLMError(Exception):
    """Raised when a backend request fails."""
    pass


class LLMClient(ABC):
    """Abstract base for LLM clients."""

    @abstractmethod
    def generate(self, system: str, prompt: str) -> LLMResponse:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass
