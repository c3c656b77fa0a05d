from __future__ import annotations
import uuid
from typing import Any, Callable, Dict, List, Optional

from local2global.config.env import get_inference_config, get_store_config
from local2global.discovery.service import discover
from local2global.errors import (
    ApplyFailedError,
    InvalidParentError,
    L2GError,
    MigrationError,
    ValidationError,
)
from local2global.mapper.engine import MappingEngine
from local2global.mapper.planner import plan
from local2global.store.base import TaxonomyStore
from local2global.store.memory import InMemoryStore
from local2global.store.records import optional_int
from local2global.utils.logger import ScopedLogger
from local2global.utils.normalizer import sanitize_key

# accepted but ignored since 0.3.0
DEPRECATED_OPTIONS = (
    "auto_create_terms",
    "update_variations",
    "create_backup",
    "hydrate_variations",
    "aggressive_hydrate_variations",
    "save_template",
)
DEPRECATED_MAPPING_FLAGS = ("save_template", "term_name")

Envelope = Dict[str, Any]


def new_corr_id(prefix: str = "l2g_") -> str:
    return f"{prefix}{uuid.uuid4().hex[:13]}"


def ok(corr_id: str, result: Any) -> Envelope:
    return {"ok": True, "corr_id": corr_id, "result": result}


class MigrationService:
    """Caller-facing facade shared by the REST and CLI adapters.

    Every call gets a correlation id and runs in a logging scope carrying it.
    Results come back as ``{"ok": true, "corr_id", "result"}``; failures as
    the `MigrationError.to_dict()` envelope, never as exceptions.
    """

    def __init__(self, store: TaxonomyStore, logger: Optional[ScopedLogger] = None, engine: Optional[MappingEngine] = None):
        self.store = store
        self.logger = logger or ScopedLogger()
        self.engine = engine or MappingEngine(store, self.logger, inference=get_inference_config())

    def _run(self, endpoint: str, corr_id: str, fn: Callable[[], Any]) -> Envelope:
        def call(log: ScopedLogger) -> Envelope:
            try:
                return ok(corr_id, fn())
            except MigrationError as exc:
                if exc.corr_id is None:
                    exc.corr_id = corr_id
                log.warning(f"{endpoint}.failed", {"code": exc.code, "status": exc.status, "message": exc.message})
                return exc.to_dict()
            except L2GError as exc:
                log.warning(f"{endpoint}.runtime_error", {"exception": exc})
                return ValidationError(str(exc), corr_id=corr_id, details=str(exc)).to_dict()
            except Exception as exc:
                log.error(f"{endpoint}.unhandled_exception", {"exception": exc})
                return ApplyFailedError(
                    f"Failed to process the mapping: {exc}", corr_id=corr_id, details=str(exc)
                ).to_dict()

        return self.logger.scoped({"corr_id": corr_id, "endpoint": endpoint}, call)

    def _validate(self, parent_id: Any, mapping: Any, options: Any) -> tuple[int, List[Dict[str, Any]]]:
        pid = optional_int(parent_id) or 0
        if pid <= 0:
            self.logger.warning("map.validation_failed", {"reason": "invalid_product", "product_id": parent_id})
            raise InvalidParentError("Invalid product.")
        if not isinstance(mapping, list) or not mapping:
            self.logger.warning("map.validation_failed", {"reason": "invalid_mapping", "product_id": pid})
            raise ValidationError("Mapping not provided.")
        if options is not None and not isinstance(options, dict):
            self.logger.warning("map.validation_failed", {"reason": "invalid_options", "product_id": pid})
            raise ValidationError("Invalid options format.")
        if not all(isinstance(m, dict) for m in mapping):
            self.logger.warning("map.validation_failed", {"reason": "invalid_mapping", "product_id": pid})
            raise ValidationError("Invalid attribute mapping.")

        sent = [k for k in DEPRECATED_OPTIONS if k in (options or {})]
        flags = [
            {f: f in m for f in DEPRECATED_MAPPING_FLAGS}
            for m in mapping
            if any(f in m for f in DEPRECATED_MAPPING_FLAGS)
        ]
        if sent or flags:
            self.logger.warning("map.deprecated_fields", {
                "deprecated_options": sent,
                "mapping_flags": flags,
                "message": "Legacy fields are ignored since 0.3.0",
            })
        return pid, mapping

    def map(self, parent_id: Any, mapping: Any, mode: str = "dry-run", options: Any = None) -> Envelope:
        """Dry-run unless ``mode == "apply"``."""
        corr_id = new_corr_id()
        mode = (mode or "").lower()

        def run() -> Dict[str, Any]:
            pid, items = self._validate(parent_id, mapping, options)
            self.logger.info("map.request_received", {
                "product_id": pid,
                "mode": mode or "dry-run",
                "mapping": [{k: m.get(k) for k in ("local_attr", "target_tax")} for m in items],
            })
            if mode == "apply":
                return self.engine.apply(pid, items, corr_id).to_dict()
            return plan(self.store, pid, items).to_dict()

        return self._run("map", corr_id, run)

    def plan(self, parent_id: Any, mapping: Any) -> Envelope:
        return self.map(parent_id, mapping, mode="dry-run")

    def apply(self, parent_id: Any, mapping: Any) -> Envelope:
        return self.map(parent_id, mapping, mode="apply")

    def resync_children(self, parent_id: Any, taxonomies: Any = None, options: Any = None) -> Envelope:
        corr_id = new_corr_id("l2g_var_")

        def run() -> Dict[str, Any]:
            pid = optional_int(parent_id) or 0
            if pid <= 0:
                raise InvalidParentError("Invalid product.")
            if taxonomies is not None and not isinstance(taxonomies, list):
                raise ValidationError("Invalid taxonomies format.")
            self.logger.info("variation.resync.request", {"product_id": pid, "tax_filter": taxonomies})
            legacy = [k for k in ("hydrate_variations", "aggressive_hydrate_variations") if k in (options or {})]
            if legacy:
                self.logger.warning("variation.resync.deprecated_flags", {"flags": legacy})
            keys = [sanitize_key(t) for t in taxonomies] if taxonomies else None
            result = self.engine.resync_children(pid, keys, corr_id)
            return {
                "per_taxonomy": {k: v.to_dict() for k, v in result["per_taxonomy"].items()},
                "aggregate": result["aggregate"].to_dict(),
            }

        return self._run("variations_update", corr_id, run)

    def discover(self, parent_id: Any) -> Dict[str, Any]:
        return discover(self.store, optional_int(parent_id) or 0)

    def terms(self, taxonomy: str, search: str = "", number: int = 0) -> Dict[str, Any]:
        taxonomy = sanitize_key(taxonomy)
        if not self.store.taxonomy_exists(taxonomy):
            return {"error": f"Invalid taxonomy {taxonomy}."}
        found = self.store.list_terms(taxonomy, search or "", number)
        return {"terms": [{"term_id": t.term_id, "name": t.name, "slug": t.slug} for t in found]}


def get_store() -> TaxonomyStore:
    cfg = get_store_config()
    if cfg.path:
        return InMemoryStore.from_json_path(cfg.path)
    return InMemoryStore()


def status_of(envelope: Envelope) -> int:
    if envelope.get("ok"):
        return 200
    return int(envelope.get("data", {}).get("status", 500))

