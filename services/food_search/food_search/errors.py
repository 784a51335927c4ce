from typing import Optional


class FoodSearchError(RuntimeError):
    """Base class for failures raised by the embedding and search core."""


class ConfigurationError(FoodSearchError):
    pass


class MissingCredentialError(ConfigurationError):
    def __init__(self, credential: str, backend: str):
        self.credential = credential
        self.backend = backend
        super().__init__(f"{credential} is not set; it is required for {backend} embeddings")


class EmbeddingError(FoodSearchError):
    pass


class DimensionProbeError(EmbeddingError):
    def __init__(self, model_id: str, dimensionality: int):
        self.model_id = model_id
        self.dimensionality = dimensionality
        super().__init__(f"Embedding dimension invalid for model {model_id}: {dimensionality}")


class SchemaMismatchError(FoodSearchError):
    def __init__(
        self,
        table: str,
        column: str,
        expected: int,
        actual: Optional[int],
        declared_type: Optional[str] = None,
    ):
        self.table = table
        self.column = column
        self.expected = expected
        self.actual = actual
        self.declared_type = declared_type
        if actual is None:
            msg = (
                f"Column {table}.{column} exists with incompatible type "
                f"{declared_type!r}; expected vector({expected})."
            )
        else:
            msg = (
                f"Column {table}.{column} has dimension {actual} but the model produces "
                f"{expected}. Drop/recreate the column or pick another EMBEDDING_MODEL."
            )
        super().__init__(msg)


class ProviderNotReadyError(FoodSearchError):
    """Raised when a search targets a model whose backend is still loading."""

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Embedding model {model_id!r} is not ready yet, retry later")


class ModelLoadError(EmbeddingError):
    """The last attempt to load a model failed; searches report it until retried."""

    def __init__(self, model_id: str, cause: BaseException):
        self.model_id = model_id
        self.cause = cause
        super().__init__(f"Embedding model {model_id!r} failed to load: {cause}")


class BatchEmbeddingError(FoodSearchError):
    def __init__(self, batch_index: int, processed: int, total: int, cause: Exception):
        self.batch_index = batch_index
        self.processed = processed
        self.total = total
        self.cause = cause
        super().__init__(
            f"Embedding batch {batch_index} failed after {processed} / {total} "
            f"records were stored: {cause}"
        )


class InvalidQueryError(FoodSearchError):
    pass
