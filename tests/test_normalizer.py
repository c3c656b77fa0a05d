import unittest

from local2global.utils.normalizer import (
    local_meta_key,
    normalize,
    sanitize_key,
    sanitize_title,
    taxonomy_key,
    taxonomy_meta_key,
)


class TestNormalizer(unittest.TestCase):
    def test_accents_and_case_fold(self):
        self.assertEqual(normalize("Café"), "cafe")
        self.assertEqual(normalize("CAFÉ"), normalize("cafe"))
        self.assertEqual(normalize("  São João "), "sao joao")

    def test_strips_markup(self):
        self.assertEqual(normalize("<b>Azul</b>"), "azul")

    def test_idempotent(self):
        for raw in ["Café", "  <i>Vermelho</i> ", "a ́", "180/90", "", "ÇÃO"]:
            once = normalize(raw)
            self.assertEqual(normalize(once), once, raw)

    def test_none_is_empty(self):
        self.assertEqual(normalize(None), "")

    def test_slugs(self):
        self.assertEqual(sanitize_title("Azul Marinho"), "azul-marinho")
        self.assertEqual(sanitize_title("180/90"), "180-90")
        self.assertEqual(sanitize_title(" -Coração- "), "coracao")
        self.assertEqual(sanitize_key("PA Cor!"), "pacor")

    def test_taxonomy_key(self):
        self.assertEqual(taxonomy_key("cor"), "pa_cor")
        self.assertEqual(taxonomy_key("pa_cor"), "pa_cor")
        self.assertEqual(taxonomy_key(""), "")

    def test_meta_keys(self):
        self.assertEqual(local_meta_key("Cor Principal"), "attribute_cor-principal")
        self.assertEqual(taxonomy_meta_key("pa_cor"), "attribute_pa_cor")


if __name__ == "__main__":
    unittest.main()
