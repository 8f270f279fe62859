"""Prompt templates for turning extracted text into import YAML.

Each prompt is a Markdown file named ``<name>.md``. A file with the same
name in the configured prompts directory replaces the built-in one.
"""

from __future__ import annotations

from pathlib import Path

PACKAGE_PROMPTS_DIR = Path(__file__).parent


class PromptManager:
    """Loads prompt templates and fills in ``{placeholders}``."""

    PROMPT_NAMES = (
        "workflow_import_system",
        "workflow_import_user",
    )

    def __init__(self, prompts_dir: str | Path | None = None) -> None:
        self.prompts_dir = Path(prompts_dir).expanduser() if prompts_dir else None
        self._templates: dict[str, str] = {}

    def prompt_path(self, name: str) -> Path | None:
        """Path the named prompt is read from, or None if neither copy exists."""
        candidates = [PACKAGE_PROMPTS_DIR / f"{name}.md"]
        if self.prompts_dir is not None:
            candidates.insert(0, self.prompts_dir / f"{name}.md")
        return next((path for path in candidates if path.exists()), None)

    def template(self, name: str) -> str:
        """Raw template text, read once per manager.

        Raises:
            ValueError: If ``name`` is not a known prompt.
            FileNotFoundError: If the prompt file is missing.
        """
        if name not in self.PROMPT_NAMES:
            raise ValueError(f"Unknown prompt {name!r}; expected one of {self.PROMPT_NAMES}")
        if name not in self._templates:
            path = self.prompt_path(name)
            if path is None:
                raise FileNotFoundError(f"Prompt file {name}.md not found")
            self._templates[name] = path.read_text(encoding="utf-8")
        return self._templates[name]

    def get_prompt(self, name: str, **variables: str) -> str:
        """Template ``name`` with each ``{key}`` replaced by its value.

        Only the given keys are replaced, so literal braces elsewhere in
        the prompt (YAML examples, for instance) are left alone.
        """
        text = self.template(name)
        for key, value in variables.items():
            text = text.replace(f"{{{key}}}", str(value))
        return text
