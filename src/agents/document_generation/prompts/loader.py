"""Prompt loading utilities for document-generation agents."""

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class PromptTemplate(BaseModel):
    """System and user templates of one role."""

    system: str
    user: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class PromptLoader:
    """Loads ``<name>.system.md`` / ``<name>.user.md`` template pairs from a directory."""

    def __init__(self, *, root_dir: Path) -> None:
        self._root_dir = root_dir
        self._cache: dict[str, PromptTemplate] = {}

    def load_template(self, *, name: str) -> PromptTemplate:
        """Load (and memoize) the template pair for ``name``."""
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        template = PromptTemplate(
            system=self._read(self._root_dir / f"{name}.system.md"),
            user=self._read(self._root_dir / f"{name}.user.md"),
        )
        self._cache[name] = template
        return template

    def _read(self, prompt_path: Path) -> str:
        if not prompt_path.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
        with open(prompt_path, encoding="utf-8") as handle:
            content = handle.read()
        logger.info("Loaded prompt: %s (%d chars)", prompt_path, len(content))
        return content
