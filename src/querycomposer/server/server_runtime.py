from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from querycomposer.composer.catalog import DEFAULT_CATALOG, Catalog
from querycomposer.composer.filter_store import FilterStore, InMemoryFilterStore, JsonFilterStore
from querycomposer.composer.history import QueryHistory
from querycomposer.composer.saved_filters import SavedFilterCollection
from querycomposer.composer.suggestions import SuggestionProvider
from querycomposer.composer.validator import VisibilityQueryValidator
from querycomposer.shared.config import ComposerConfig


logger = logging.getLogger(__name__)


class ComposerRuntime:
    """Shared state behind the composer MCP tools."""

    def __init__(
        self,
        config: Optional[ComposerConfig] = None,
        store: Optional[FilterStore] = None,
        catalog: Catalog = DEFAULT_CATALOG,
    ) -> None:
        self.config = config or ComposerConfig.from_env()
        self.data_dir = Path(self.config.data_dir)
        self.catalog = catalog

        self.provider = SuggestionProvider(catalog, max_suggestions=self.config.max_suggestions)
        self.validator = VisibilityQueryValidator(catalog)
        self.history = QueryHistory(max_size=self.config.history_size)

        self.filter_store: FilterStore = store or JsonFilterStore(self.config.saved_filters_path)
        self._filters: Optional[SavedFilterCollection] = None
        self._degraded = False
        self._server_ready = False

    # ------------------------------------------------------------------
    # Properties exposing runtime state
    # ------------------------------------------------------------------
    @property
    def server_ready(self) -> bool:
        return self._server_ready

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def filters(self) -> SavedFilterCollection:
        if self._filters is None:
            self._filters = SavedFilterCollection(self.filter_store)
        return self._filters

    def now(self) -> datetime:
        """Reference time for placeholder resolution when the caller gives none."""
        return datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Initialization routines
    # ------------------------------------------------------------------
    def initialize_critical_components(self) -> None:
        """Prepare the data directory and load saved filters.

        A data directory that cannot be written, or a saved filter file that
        cannot be read, leaves the server running with in-memory filters.
        """
        logger.info("Initializing composer runtime (data_dir=%s)", self.data_dir)
        try:
            if isinstance(self.filter_store, JsonFilterStore):
                self.data_dir.mkdir(parents=True, exist_ok=True)
                if not self.data_dir.is_dir() or not os.access(self.data_dir, os.W_OK):
                    raise RuntimeError(f"Data directory {self.data_dir} is not writable")
            self._filters = SavedFilterCollection(self.filter_store)
            logger.info("Loaded %d saved filters", len(self._filters))
        except (OSError, ValueError, RuntimeError) as exc:
            logger.error("Failed to load saved filters: %s", exc, exc_info=True)
            logger.warning("Starting in degraded mode: saved filters will not be persisted")
            self.filter_store = InMemoryFilterStore()
            self._filters = SavedFilterCollection(self.filter_store)
            self._degraded = True

        self._server_ready = True
        logger.info("Composer runtime ready")


__all__ = ["ComposerRuntime"]
