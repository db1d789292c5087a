"""Errors raised by the document generation pipeline."""


class DocumentGenerationError(Exception):
    """Base class for fatal document generation failures."""


class SchemaValidationError(DocumentGenerationError):
    """An agent's output did not match the schema of its role."""

    def __init__(self, *, role: str, model_name: str, detail: str) -> None:
        self.role = role
        self.model_name = model_name
        self.detail = detail
        super().__init__(f"{role} output does not match {model_name}: {detail}")


class ProviderError(DocumentGenerationError):
    """A generation or tool provider call failed."""

    def __init__(self, *, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider} call failed: {detail}")
