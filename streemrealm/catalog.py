"""Block encyclopedia - static reference data for materials.

Every material name resolves to a built-in BlockData record (image, emoji,
description, trivia, rarity). The data ships with the package as YAML and is
never fetched from Airtable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "data" / "blocks.yaml"


class BlockRarity(str, Enum):
    """Rarity tier shown on material cards."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class BlockData:
    """Static info for one block type.

    Attributes:
        image_name: Local asset image name
        emoji: Emoji used when no image is rendered
        description: Kid-friendly description
        trivia: Fun fact
        rarity: Rarity tier
    """

    image_name: str
    emoji: str
    description: str
    trivia: str
    rarity: BlockRarity

    @classmethod
    def from_dict(cls, data: dict) -> BlockData:
        return cls(
            image_name=str(data["image_name"]),
            emoji=str(data["emoji"]),
            description=str(data["description"]),
            trivia=str(data["trivia"]),
            rarity=BlockRarity(data.get("rarity", "common")),
        )


@dataclass(frozen=True)
class BlockCatalog:
    """Loaded encyclopedia: default entry plus blocks keyed by exact name."""

    default: BlockData
    blocks: dict[str, BlockData]

    def lookup(self, name: str | None) -> BlockData:
        """Resolve a material name by exact match, falling back to the default."""
        if name is None:
            return self.default
        return self.blocks.get(name, self.default)

    def __len__(self) -> int:
        return len(self.blocks)


def load_catalog(path: Path = CATALOG_PATH) -> BlockCatalog:
    """Load the block encyclopedia from YAML.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
        ValueError: If the catalog is missing its sections
    """
    if not path.exists():
        raise FileNotFoundError(f"Block catalog not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not raw or "default" not in raw or "blocks" not in raw:
        raise ValueError("Invalid block catalog: missing 'default' or 'blocks' section")

    blocks = {
        str(name): BlockData.from_dict(entry)
        for name, entry in (raw["blocks"] or {}).items()
    }
    logger.debug("Loaded %s blocks from %s", len(blocks), path)
    return BlockCatalog(default=BlockData.from_dict(raw["default"]), blocks=blocks)


@lru_cache(maxsize=1)
def get_catalog() -> BlockCatalog:
    """Built-in catalog, loaded once per process."""
    return load_catalog()


def lookup_block(name: str | None) -> BlockData:
    """Resolve a material name against the built-in catalog."""
    return get_catalog().lookup(name)
