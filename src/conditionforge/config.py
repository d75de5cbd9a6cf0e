"""Runtime configuration for the condition engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from conditionforge.dsl.catalog import ConditionVariableCatalog
from conditionforge.dsl.parser import DEFAULT_MAX_DEPTH

DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class ConditionForgeConfig:
    """Engine configuration.

    Attributes:
        catalog_path: YAML catalog file, or None for an empty catalog
        max_depth: Parser nesting limit
        log_level: Root log level name used by the CLI
    """

    catalog_path: Path | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> ConditionForgeConfig:
        """Create config from environment variables.

        CONDITIONFORGE_CATALOG_PATH: catalog YAML file (unset: empty catalog)
        CONDITIONFORGE_MAX_DEPTH: positive integer (default 64)
        CONDITIONFORGE_LOG_LEVEL: logging level name (default WARNING)

        Raises:
            ValueError: If CONDITIONFORGE_MAX_DEPTH is not a positive integer
        """
        catalog_path = os.environ.get("CONDITIONFORGE_CATALOG_PATH") or None

        raw_depth = os.environ.get("CONDITIONFORGE_MAX_DEPTH")
        max_depth = DEFAULT_MAX_DEPTH
        if raw_depth:
            try:
                max_depth = int(raw_depth)
            except ValueError:
                raise ValueError(
                    f"CONDITIONFORGE_MAX_DEPTH must be an integer, got '{raw_depth}'"
                ) from None
            if max_depth < 1:
                raise ValueError(f"CONDITIONFORGE_MAX_DEPTH must be positive, got {max_depth}")

        log_level = (os.environ.get("CONDITIONFORGE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()

        return cls(
            catalog_path=Path(catalog_path) if catalog_path else None,
            max_depth=max_depth,
            log_level=log_level,
        )

    def load_catalog(self) -> ConditionVariableCatalog:
        """Load the configured catalog, or return an empty one.

        Raises:
            CatalogError: If the configured file is missing or invalid
        """
        if self.catalog_path is None:
            return ConditionVariableCatalog()

        from conditionforge.metadata.loader import load_catalog

        return load_catalog(self.catalog_path)
