import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

from local2global.cli import main

SNAPSHOT = {
    "taxonomies": [{"attribute_id": 1, "slug": "cor", "label": "Cor"}],
    "terms": {"pa_cor": [
        {"term_id": 11, "name": "Azul", "slug": "azul"},
        {"term_id": 12, "name": "Vermelho", "slug": "vermelho"},
    ]},
    "parents": [{
        "id": 100,
        "title": "Camiseta",
        "kind": "variable",
        "attributes": [{"name": "Cor", "value": "Azul | Vermelho", "is_visible": 1, "is_variation": 1, "is_taxonomy": 0}],
    }],
    "children": [
        {"id": 201, "parent_id": 100, "title": "Camiseta Azul", "meta": {"attribute_cor": "Azul"}},
        {"id": 202, "parent_id": 100, "title": "Camiseta Vermelho", "meta": {"attribute_cor": "Vermelho"}},
    ],
}


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "store.json")
        self.out = os.path.join(self.tmp.name, "out.json")
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(SNAPSHOT, f)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *argv):
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(list(argv))
        return code, buf.getvalue()

    def test_map_apply_and_save(self):
        code, out = self.run_cli(
            "--store", self.path, "--save", self.out,
            "map", "--product", "100", "--attr", "Cor:pa_cor", "--term", "Azul:azul", "--term", "Vermelho:vermelho",
        )
        self.assertEqual(code, 0)
        body = json.loads(out)
        self.assertTrue(body["ok"])
        self.assertEqual(body["result"]["variations"]["pa_cor"]["updated"], 2)
        with open(self.out, encoding="utf-8") as f:
            saved = json.load(f)
        metas = {c["id"]: c["meta"] for c in saved["children"]}
        self.assertEqual(metas[201], {"attribute_pa_cor": "azul"})
        self.assertEqual(saved["parents"][0]["attributes"][0]["name"], "pa_cor")

    def test_map_dry_run(self):
        code, out = self.run_cli(
            "--store", self.path, "map", "--product", "100", "--attr", "Cor:pa_cor", "--term", "Azul:azul", "--dry-run",
        )
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["result"]["attributes"][0]["terms"]["existing"], ["Azul"])

    def test_map_error_exit_code(self):
        code, out = self.run_cli(
            "--store", self.path, "map", "--product", "100", "--attr", "Cor:pa_cor", "--term", "Verde:verde",
        )
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["code"], "l2g_terms_missing")

    def test_map_requires_attr(self):
        code, _ = self.run_cli("--store", self.path, "map", "--product", "100", "--attr", "broken")
        self.assertEqual(code, 2)

    def test_variations_update(self):
        code, out = self.run_cli("--store", self.path, "variations-update", "--product", "100")
        self.assertEqual(code, 0)
        # nothing is taxonomy-backed yet
        self.assertEqual(json.loads(out)["result"]["per_taxonomy"], {})

    def test_suggest(self):
        code, out = self.run_cli("--store", self.path, "suggest", "--product", "100")
        self.assertEqual(code, 0)
        body = json.loads(out)
        self.assertEqual(body["discovery"]["attributes"][0]["name"], "Cor")
        self.assertEqual(body["mapping"][0]["target_tax"], "pa_cor")

    def test_simulate(self):
        with mock.patch.dict(os.environ, {"L2G_STORE_PATH": ""}):
            code, out = self.run_cli("--save", self.out, "simulate", "--variations", "2")
        self.assertEqual(code, 0)
        self.assertIn('"ok": true', out)
        self.assertIn("# Migration Summary", out)
        with open(self.out, encoding="utf-8") as f:
            saved = json.load(f)
        self.assertEqual([t["slug"] for t in saved["taxonomies"]], ["cor"])
        self.assertEqual(sorted(c["meta"]["attribute_pa_cor"] for c in saved["children"]), ["azul", "vermelho"])


if __name__ == "__main__":
    unittest.main()
