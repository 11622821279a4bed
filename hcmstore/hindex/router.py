"""Classification-driven scoped search over the storage tree.

Three static configuration documents live under ``<config_dir>/`` in the
storage root and are loaded once:

    classification.json   {"classifications": [{class, keywords, priority}]}
    scopes.json           {"scopes": {class: {include: [...], exclude: [...]}}}
    routing.json          {"routing": {class: mode}}

``search`` classifies the query by keyword, resolves the class's scope,
enumerates the files under the scope's literal roots, filters them with the
include/exclude globs and reads every surviving file.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import ValidationError

from hcmstore.core.errors import HcmError, InternalError
from hcmstore.core.gateway import StorageGateway
from hcmstore.hindex.patterns import compile_pattern, search_roots
from hcmstore.models.hindex import (
    ClassificationConfig,
    RoutingConfig,
    Scope,
    ScopeConfig,
    SearchHit,
    SearchResult,
)

logger = logging.getLogger(__name__)

LINE_DELIMITED_SUFFIX = ".jsonl"


class HindexRouter:
    """Keyword classifier, scope resolver and aggregated reader.

    Parameters
    ----------
    gateway:
        Storage gateway used to load configuration and read matches.
    config_dir:
        Root-relative directory holding the three configuration files.
    default_classification:
        Class returned when no rule matches.
    default_routing_mode:
        Mode returned for classes missing from the routing table.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        *,
        config_dir: str = "hindex",
        default_classification: str = "domain_knowledge",
        default_routing_mode: str = "vector",
    ) -> None:
        self._gateway = gateway
        self._config_dir = config_dir.rstrip("/")
        self._default_classification = default_classification
        self._default_routing_mode = default_routing_mode
        self._classifications: ClassificationConfig | None = None
        self._scopes: ScopeConfig | None = None
        self._routing: RoutingConfig | None = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._classifications is not None

    def load(self) -> None:
        """Load and validate the three configuration documents.

        Raises
        ------
        InternalError
            Any file is missing, unparsable or has the wrong shape.
        """
        try:
            classifications = ClassificationConfig.model_validate(
                self._gateway.read_json(f"{self._config_dir}/classification.json")
            )
            scopes = ScopeConfig.model_validate(
                self._gateway.read_json(f"{self._config_dir}/scopes.json")
            )
            routing = RoutingConfig.model_validate(
                self._gateway.read_json(f"{self._config_dir}/routing.json")
            )
        except (HcmError, ValidationError) as exc:
            logger.error("Hindex configuration failed to load from %s: %s", self._config_dir, exc)
            raise InternalError(
                "Hindex engine initialization failed: configuration missing",
                {"config_dir": self._config_dir, "error": str(exc)},
            ) from exc
        self._classifications, self._scopes, self._routing = classifications, scopes, routing
        logger.info(
            "Hindex loaded: %d rules, %d scopes, %d routes",
            len(classifications.classifications),
            len(scopes.scopes),
            len(routing.routing),
        )

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, query: str) -> str:
        """Highest-priority rule with any keyword in ``query`` (case-insensitive).

        Ties go to the rule declared first; no match yields the default.
        """
        self._ensure_loaded()
        lowered = query.lower()
        best: str | None = None
        best_priority: float | None = None
        for rule in self._classifications.classifications:
            if not any(kw.lower() in lowered for kw in rule.keywords):
                continue
            if best_priority is None or rule.priority > best_priority:
                best, best_priority = rule.class_, rule.priority
        return best if best is not None else self._default_classification

    def get_scope(self, classification: str) -> Scope | None:
        self._ensure_loaded()
        return self._scopes.scopes.get(classification)

    def get_routing(self, classification: str) -> str:
        self._ensure_loaded()
        return self._routing.routing.get(classification) or self._default_routing_mode

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def select_files(self, scope: Scope) -> list[str]:
        """Files under the scope's roots matching an include and no exclude."""
        candidates: list[str] = []
        for root in search_roots(scope.include):
            candidates.extend(self._gateway.list_files_recursive(root))
        includes = [compile_pattern(p) for p in scope.include]
        excludes = [compile_pattern(p) for p in scope.exclude]
        return [
            path
            for path in candidates
            if any(r.match(path) for r in includes) and not any(r.match(path) for r in excludes)
        ]

    def read_source(self, path: str) -> Any:
        if path.endswith(LINE_DELIMITED_SUFFIX):
            return self._gateway.read_json_lines(path)
        return self._gateway.read_json(path)

    def search(
        self,
        query: str,
        caller_id: str = "",
        *,
        source_prefixes: Sequence[str] | None = None,
    ) -> SearchResult:
        """Classify, resolve scope, select and read matching files.

        Parameters
        ----------
        query:
            Free-text query.
        caller_id:
            Identity of the caller (recorded in logs only).
        source_prefixes:
            When given, only sources starting with one of these prefixes
            are read and returned.
        """
        self._ensure_loaded()
        classification = self.classify(query)
        scope = self.get_scope(classification)
        if scope is None:
            logger.debug("No scope for class %s (caller=%s)", classification, caller_id)
            return SearchResult(
                query=query, classification=classification, note="No scope defined"
            )
        routing_mode = self.get_routing(classification)

        files = self.select_files(scope)
        if source_prefixes is not None:
            prefixes = tuple(source_prefixes)
            files = [f for f in files if f.startswith(prefixes)]

        hits: list[SearchHit] = []
        for path in files:
            try:
                content = self.read_source(path)
            except HcmError as exc:
                logger.debug("Skipping unreadable search source %s: %s", path, exc)
                continue
            hits.append(SearchHit(source=path, content=content))

        logger.info(
            "Search by %s classified %r as %s (%s): %d results",
            caller_id or "anonymous",
            query,
            classification,
            routing_mode,
            len(hits),
        )
        return SearchResult(
            query=query,
            classification=classification,
            routing_mode=routing_mode,
            count=len(hits),
            results=hits,
        )
