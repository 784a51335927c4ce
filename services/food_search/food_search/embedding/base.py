from abc import ABC, abstractmethod
from typing import List, Sequence


class EmbeddingProvider(ABC):
    """
    Minimal embedding provider interface.

    embed() takes a non-empty batch and returns one pooled vector per input,
    in input order. The vector width is whatever the model produces; callers
    probe it instead of configuring it.
    """

    backend: str = ""

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    def ensure_configured(self) -> None:
        """Raise a ConfigurationError if the backend cannot be used at all."""

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        ...


def require_texts(texts: Sequence[str]) -> List[str]:
    if isinstance(texts, str):
        raise TypeError("embed() expects a sequence of strings, not a single string")
    items = list(texts)
    if not items:
        raise ValueError("texts must not be empty")
    return items
