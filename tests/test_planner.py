import unittest

from local2global.errors import InvalidParentError
from local2global.mapper.models import AttributeMapping, LocalAttribute, TargetAttribute, TermMapping
from local2global.mapper.planner import plan

from support import color_mapping, color_store


class TestPlanner(unittest.TestCase):
    def setUp(self):
        self.store = color_store()

    def test_unknown_parent(self):
        with self.assertRaises(InvalidParentError) as ctx:
            plan(self.store, 999, [color_mapping()])
        self.assertEqual(ctx.exception.status, 404)

    def test_existing_terms(self):
        preview = plan(self.store, 100, [color_mapping()]).to_dict()
        self.assertEqual(preview["product_id"], 100)
        self.assertEqual(preview["errors"], [])
        item = preview["attributes"][0]
        self.assertTrue(item["attribute_exists"])
        self.assertFalse(item["create_attribute"])
        self.assertEqual(item["terms"], {"create": [], "existing": ["Azul", "Vermelho"]})

    def test_mapping_object_is_normalized(self):
        mapping = AttributeMapping(
            local=LocalAttribute("Cor", "Cor"),
            target=TargetAttribute("Cor"),
            terms=(TermMapping("Azul", "Azul"),),
        )
        item = plan(self.store, 100, [mapping]).attributes[0]
        self.assertEqual(item.target_tax, "pa_cor")
        self.assertTrue(item.attribute_exists)
        self.assertEqual(item.existing, ["Azul"])
        self.assertEqual(item.errors, [])

    def test_missing_term(self):
        mapping = color_mapping(terms=[
            {"local_value": "Azul"},
            {"local_value": "Verde"},
            {"local_value": "Azul Marinho", "term_slug": "azul-marinho", "create": True},
        ])
        item = plan(self.store, 100, [mapping]).attributes[0]
        self.assertEqual(item.existing, ["Azul"])
        self.assertEqual(item.create, [{"value": "Azul Marinho", "slug": "azul-marinho"}])
        self.assertEqual(item.errors, ["Term Verde not found in taxonomy pa_cor."])

    def test_auto_create_terms(self):
        mapping = color_mapping(terms=[{"local_value": "Verde"}])
        item = plan(self.store, 100, [mapping], auto_create_terms=True).attributes[0]
        self.assertEqual(item.create, [{"value": "Verde", "slug": "verde"}])
        self.assertEqual(item.errors, [])

    def test_missing_attribute(self):
        preview = plan(self.store, 100, [color_mapping(target_tax="pa_tamanho")])
        self.assertEqual(
            preview.errors,
            ["Global attribute pa_tamanho does not exist and automatic creation was not selected."],
        )

    def test_attribute_creation_plans_every_term(self):
        item = plan(self.store, 100, [color_mapping(target_tax="tamanho", create_attribute=True)]).attributes[0]
        self.assertEqual(item.target_tax, "pa_tamanho")
        self.assertTrue(item.create_attribute)
        self.assertEqual([c["slug"] for c in item.create], ["azul", "vermelho"])
        self.assertEqual(item.errors, [])

    def test_empty_target(self):
        preview = plan(self.store, 100, [color_mapping(target_tax="")])
        self.assertIn("Target taxonomy not provided.", preview.errors)

    def test_never_mutates(self):
        before = self.store.to_dict()
        mappings = [color_mapping(create_attribute=True, terms=[{"local_value": "Verde", "create": True}])]
        first = plan(self.store, 100, mappings).to_dict()
        second = plan(self.store, 100, mappings).to_dict()
        self.assertEqual(first, second)
        self.assertEqual(self.store.to_dict(), before)
        self.assertEqual(self.store.saved, [])


if __name__ == "__main__":
    unittest.main()
