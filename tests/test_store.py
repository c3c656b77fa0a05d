import json
import os
import tempfile
import unittest

from local2global.errors import StoreError, is_conflict
from local2global.store.memory import InMemoryStore, seed_taxonomy
from local2global.store.records import AttributeKind, Child, Parent, ParentAttribute, coerce_attribute

from support import color_store


class TestRecords(unittest.TestCase):
    def test_legacy_attribute(self):
        attr = coerce_attribute({
            "name": "Cor", "value": "Azul | Vermelho | ", "is_visible": 1, "is_variation": 1, "is_taxonomy": 0,
        })
        self.assertEqual(attr.options, ["Azul", "Vermelho"])
        self.assertEqual(attr.position, 0)
        self.assertTrue(attr.visible)
        self.assertTrue(attr.variation)
        self.assertEqual(attr.kind, AttributeKind.FREE_TEXT)

    def test_canonical_passthrough(self):
        attr = ParentAttribute("Cor", ["Azul"])
        self.assertIs(coerce_attribute(attr), attr)


class TestInMemoryStore(unittest.TestCase):
    def setUp(self):
        self.store = color_store()

    def test_duplicate_attribute_is_conflict(self):
        with self.assertRaises(StoreError) as ctx:
            self.store.create_attribute("Cor", "cor")
        self.assertTrue(is_conflict(str(ctx.exception)))

    def test_attribute_slug_rules(self):
        with self.assertRaises(StoreError):
            self.store.create_attribute("Long", "x" * 29)
        with self.assertRaises(StoreError):
            self.store.create_attribute("  ", "blank")

    def test_duplicate_term_is_conflict(self):
        with self.assertRaises(StoreError) as ctx:
            self.store.insert_term("Azul", "pa_cor", "azul")
        self.assertTrue(is_conflict(str(ctx.exception)))

    def test_term_in_unregistered_taxonomy(self):
        with self.assertRaises(StoreError):
            self.store.insert_term("P", "pa_tamanho", "p")

    def test_object_terms_validation(self):
        with self.assertRaises(StoreError):
            self.store.set_object_terms(100, [11], "pa_tamanho")
        with self.assertRaises(StoreError):
            self.store.set_object_terms(100, [999], "pa_cor")
        self.store.set_object_terms(100, [12, 11], "pa_cor")
        self.assertEqual([t.slug for t in self.store.get_object_terms(100, "pa_cor")], ["vermelho", "azul"])

    def test_list_terms(self):
        found = self.store.list_terms("pa_cor", search="verm")
        self.assertEqual([t.term_id for t in found], [12])
        self.assertEqual(len(self.store.list_terms("pa_cor", number=1)), 1)

    def test_raw_write_leaves_cache_stale(self):
        self.assertEqual(self.store.get_child_meta(201, "attribute_cor"), "Azul")
        self.store.upsert_meta_raw(201, "attribute_cor", "Verde")
        self.assertEqual(self.store.get_child_meta(201, "attribute_cor"), "Azul")
        self.assertEqual(self.store.read_meta_raw(201, "attribute_cor"), "Verde")
        self.store.invalidate_child_caches(201)
        self.assertEqual(self.store.get_child_meta(201, "attribute_cor"), "Verde")

    def test_hooks_fire_unless_suspended(self):
        seen = []
        self.store.hooks.append(lambda store, cid, key, value: seen.append((cid, key, value)))
        with self.store.suspend_hooks():
            self.store.update_child_meta(201, "_price", "10")
        self.assertEqual(seen, [])
        self.store.update_child_meta(201, "_price", "12")
        self.assertEqual(seen, [(201, "_price", "12")])

    def test_sync_variable_refreshes_native(self):
        self.store.update_child_meta(201, "attribute_pa_cor", "azul")
        self.store.sync_variable(100)
        self.assertEqual(self.store.native_child_attributes(201)["attribute_pa_cor"], "azul")
        self.assertEqual(self.store.synced, [100])

    def test_seed_taxonomy(self):
        key = seed_taxonomy(self.store, "tamanho", "Tamanho", {"p": "P", "m": "M"})
        self.assertEqual(key, "pa_tamanho")
        self.assertTrue(self.store.taxonomy_exists(key))
        self.assertEqual(self.store.get_term_by_slug("m", key).name, "M")


class TestSnapshot(unittest.TestCase):
    def test_load_legacy_snapshot_and_dump(self):
        data = {
            "taxonomies": [{"attribute_id": 5, "slug": "cor", "label": "Cor"}],
            "terms": {"pa_cor": [{"term_id": 11, "name": "Azul", "slug": "azul"}]},
            "parents": [{
                "id": 100,
                "kind": "variable",
                "attributes": [{"name": "Cor", "value": "Azul", "is_visible": 1, "is_variation": 1}],
                "object_terms": {"pa_cor": [11]},
            }],
            "children": [{"id": 201, "parent_id": 100, "meta": {"attribute_cor": "Azul", "_sku": "CAM-AZ"}}],
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "store.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            store = InMemoryStore.from_json_path(path)

            self.assertEqual(store.attribute_id_by_name("cor"), 5)
            self.assertEqual(store.get_children(100), [201])
            self.assertEqual(store.get_child_meta(201, "_sku"), "CAM-AZ")
            self.assertEqual(store.native_child_attributes(201), {"attribute_cor": "Azul"})
            self.assertEqual([t.term_id for t in store.get_object_terms(100, "pa_cor")], [11])

            out = os.path.join(tmp, "out.json")
            store.dump_json(out)
            with open(out, encoding="utf-8") as f:
                dumped = json.load(f)
        attr = dumped["parents"][0]["attributes"][0]
        self.assertEqual(attr["options"], ["Azul"])
        self.assertEqual(attr["kind"], "free_text")
        self.assertEqual(dumped["parents"][0]["object_terms"], {"pa_cor": [11]})

    def test_child_registers_with_parent(self):
        store = InMemoryStore()
        store.add_parent(Parent(id=1, kind="variable"))
        store.add_child(Child(2, 1))
        self.assertEqual(store.get_children(1), [2])
        self.assertEqual(store.get_children(99), [])


if __name__ == "__main__":
    unittest.main()
