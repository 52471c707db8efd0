"""Unit tests for the block encyclopedia loader."""

from __future__ import annotations

import pytest

from streemrealm.catalog import BlockRarity, get_catalog, load_catalog, lookup_block


class TestBuiltInCatalog:
    def test_loads_all_blocks(self):
        catalog = get_catalog()

        assert len(catalog) == 58
        assert catalog.default.image_name == "block_stone"

    def test_exact_match(self):
        block = lookup_block("Diamond Block")

        assert block.emoji == "💎"
        assert block.rarity == BlockRarity.EPIC

    def test_match_is_case_sensitive(self):
        assert lookup_block("diamond block") == get_catalog().default

    def test_none_gets_default(self):
        assert lookup_block(None) == get_catalog().default

    def test_rarity_label(self):
        assert BlockRarity.LEGENDARY.label == "Legendary"


class TestLoadCatalog:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "nope.yaml")

    def test_missing_sections(self, tmp_path):
        path = tmp_path / "blocks.yaml"
        path.write_text("blocks: {}\n")

        with pytest.raises(ValueError, match="default"):
            load_catalog(path)

    def test_custom_catalog(self, tmp_path):
        path = tmp_path / "blocks.yaml"
        path.write_text(
            "default:\n"
            "  image_name: x\n  emoji: '?'\n  description: d\n  trivia: t\n"
            "blocks:\n"
            "  Glass:\n"
            "    image_name: block_glass\n    emoji: '🪟'\n    description: d\n"
            "    trivia: t\n    rarity: uncommon\n"
        )

        catalog = load_catalog(path)

        assert catalog.lookup("Glass").rarity == BlockRarity.UNCOMMON
        assert catalog.default.rarity == BlockRarity.COMMON
