"""Tests for prompt loading."""

from pathlib import Path

import pytest

from stepwright.prompts import PromptManager


class TestPromptManager:
    """Tests for PromptManager."""

    def test_builtin_user_prompt_substitutes_content(self) -> None:
        prompt = PromptManager().get_prompt("workflow_import_user", content="STEP TEXT")

        assert "STEP TEXT" in prompt
        assert "{content}" not in prompt

    def test_custom_directory_overrides(self, tmp_path: Path) -> None:
        (tmp_path / "workflow_import_system.md").write_text("custom system", encoding="utf-8")
        manager = PromptManager(tmp_path)

        assert manager.get_prompt("workflow_import_system") == "custom system"
        assert manager.prompt_path("workflow_import_user").parent != tmp_path

    def test_unknown_prompt(self) -> None:
        with pytest.raises(ValueError, match="Unknown prompt"):
            PromptManager().get_prompt("summarize")
