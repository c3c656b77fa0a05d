from __future__ import annotations
from typing import Optional

from local2global.store.base import TaxonomyStore
from local2global.utils.logger import ScopedLogger


class VerifiedMetaWriter:
    """Write a child meta value and verify that it survived.

    Host save hooks may purge caches in a way that discards an in-flight
    write, and object-level saves were seen to revert sibling children that
    share a value. So a write is: suspend hooks -> raw upsert -> invalidate
    caches -> read back -> one corrective rewrite on mismatch -> verify.
    """

    def __init__(self, store: TaxonomyStore, logger: ScopedLogger) -> None:
        self.store = store
        self.logger = logger

    def write(self, child_id: int, key: str, value: str, remove_key: Optional[str] = None) -> bool:
        with self.store.suspend_hooks():
            self.logger.info("variation.hooks.disabled", {"child_id": child_id})
            self.store.upsert_meta_raw(child_id, key, value)
            if remove_key and remove_key != key:
                self.store.delete_child_meta(child_id, remove_key)
            self.store.invalidate_child_caches(child_id)

            actual = self.store.read_meta_raw(child_id, key)
            if actual != value:
                self.logger.error("variation.persistence_failure", {
                    "child_id": child_id, "key": key, "expected": value, "actual": actual, "corrective": True,
                })
                self.store.upsert_meta_raw(child_id, key, value)
                self.store.invalidate_child_caches(child_id)
        self.logger.info("variation.hooks.restored", {"child_id": child_id})

        current = self.store.get_child_meta(child_id, key)
        if current == value:
            self.logger.info("variation.persistence_verified", {"child_id": child_id, "key": key, "value": value})
            return True
        self.logger.error("variation.persistence_failure", {
            "child_id": child_id, "key": key, "expected": value, "actual": current,
        })
        return False
