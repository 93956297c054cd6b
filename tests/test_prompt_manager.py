"""
Unit tests for prompt template management.
"""

import pytest

from competitor_monitor.components.prompt_manager import BUILTIN_PROMPTS, PromptManager
from competitor_monitor.models.industry import Industry


class TestPromptManager:
    """Test cases for PromptManager."""

    @pytest.fixture
    def prompts_dir(self, tmp_path):
        directory = tmp_path / "prompts"
        directory.mkdir()
        return directory

    def test_missing_directory_uses_builtin_prompts(self, tmp_path):
        manager = PromptManager(str(tmp_path / "missing"))

        assert manager.get_available_templates() == []
        assert manager.get_extraction_prompt("retail_ecommerce") == BUILTIN_PROMPTS[
            Industry.RETAIL_ECOMMERCE
        ]

    def test_path_that_is_a_file_is_rejected(self, tmp_path):
        path = tmp_path / "prompts.txt"
        path.write_text("not a directory")

        with pytest.raises(ValueError, match="is not a directory"):
            PromptManager(str(path))

    @pytest.mark.parametrize("industry", list(Industry))
    def test_builtin_prompt_for_each_industry(self, prompts_dir, industry):
        prompt = PromptManager(str(prompts_dir)).get_extraction_prompt(industry.value)

        assert '"prices"' in prompt
        assert '"promotions"' in prompt
        assert '"menu_items"' in prompt
        assert prompt.endswith("HTML Content to Extract From:\n")

    def test_healthcare_prompt_excludes_patient_data(self, prompts_dir):
        prompt = PromptManager(str(prompts_dir)).get_extraction_prompt("healthcare_pharmacy")

        assert "DO NOT extract personal health information" in prompt

    @pytest.mark.parametrize("industry", [None, "", "aerospace"])
    def test_unknown_industry_uses_default(self, prompts_dir, industry):
        manager = PromptManager(str(prompts_dir))

        assert manager.get_extraction_prompt(industry) == BUILTIN_PROMPTS[
            Industry.RESTAURANT_FOOD
        ]

    def test_build_extraction_prompt_appends_content(self, prompts_dir):
        manager = PromptManager(str(prompts_dir))

        prompt = manager.build_extraction_prompt("<p>Classic Burger $10</p>", "restaurant_food")

        assert prompt.startswith("You are an expert at extracting structured data from restaurant")
        assert prompt.endswith("<p>Classic Burger $10</p>")

    def test_override_file_replaces_builtin(self, prompts_dir):
        (prompts_dir / "extraction_retail_ecommerce.txt").write_text(
            "Custom retail prompt\n", encoding="utf-8"
        )
        manager = PromptManager(str(prompts_dir))

        prompt = manager.build_extraction_prompt("PAGE", "retail_ecommerce")

        assert prompt == "Custom retail prompt\n\nPAGE"
        assert manager.get_available_templates() == ["extraction_retail_ecommerce.txt"]
        assert manager.get_extraction_prompt("restaurant_food") == BUILTIN_PROMPTS[
            Industry.RESTAURANT_FOOD
        ]

    def test_empty_override_is_ignored(self, prompts_dir):
        (prompts_dir / "extraction_restaurant_food.txt").write_text("   \n")

        prompt = PromptManager(str(prompts_dir)).get_extraction_prompt("restaurant_food")

        assert prompt == BUILTIN_PROMPTS[Industry.RESTAURANT_FOOD]

    def test_templates_are_cached_until_cleared(self, prompts_dir):
        override = prompts_dir / "extraction_professional_services.txt"
        override.write_text("Version one")
        manager = PromptManager(str(prompts_dir))
        assert manager.get_extraction_prompt("professional_services").startswith("Version one")

        override.write_text("Version two")
        assert manager.get_extraction_prompt("professional_services").startswith("Version one")

        manager.clear_cache()
        assert manager.get_extraction_prompt("professional_services").startswith("Version two")
