import unittest

from local2global.matcher.core import Option, best_match, similarity, suggest_attribute, suggest_term


class TestMatcher(unittest.TestCase):
    def test_similarity_bounds(self):
        self.assertEqual(similarity("cor", "cor"), 1.0)
        self.assertEqual(similarity("", "cor"), 0.0)
        self.assertAlmostEqual(similarity("colour", "color"), 1 - 1 / 6)

    def test_exact_after_normalization(self):
        cand = best_match("CÔR", [Option("pa_tamanho", "Tamanho"), Option("pa_cor", "Cor")])
        self.assertEqual(cand.option.key, "pa_cor")
        self.assertEqual(cand.score, 1.0)
        self.assertEqual(cand.reason, "exact")

    def test_exact_on_key(self):
        cand = best_match("azul-marinho", [Option("azul-marinho", "Azul Marinho Escuro")])
        self.assertEqual(cand.reason, "exact")

    def test_typo(self):
        cand = best_match("Colour", [Option("pa_size", "Size"), Option("pa_color", "Color")])
        self.assertEqual(cand.option.key, "pa_color")
        self.assertEqual(cand.reason, "lev:1")

    def test_tie_keeps_first(self):
        cand = best_match("ab", [Option("x", "ac"), Option("y", "ad")])
        self.assertEqual(cand.option.key, "x")

    def test_empty(self):
        self.assertIsNone(best_match("", [Option("pa_cor", "Cor")]))
        self.assertIsNone(best_match("cor", []))


class TestSuggestions(unittest.TestCase):
    def test_attribute_above_threshold(self):
        s = suggest_attribute("Colour", [Option("pa_color", "Color")])
        self.assertEqual(s.key, "pa_color")
        self.assertFalse(s.create)

    def test_attribute_falls_back_to_creation(self):
        s = suggest_attribute("Material", [Option("pa_color", "Color")])
        self.assertTrue(s.create)
        self.assertEqual(s.key, "pa_material")
        self.assertEqual(s.reason, "create")

    def test_term_threshold_is_strict(self):
        # "ab" vs "ac" scores exactly 0.5
        s = suggest_term("ab", [Option("ac", "ac")])
        self.assertTrue(s.create)
        self.assertEqual(s.key, "ab")

    def test_term_without_candidates(self):
        s = suggest_term("Azul Marinho", [])
        self.assertEqual((s.key, s.create, s.score), ("azul-marinho", True, 0.0))


if __name__ == "__main__":
    unittest.main()
