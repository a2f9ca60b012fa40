import random
import unittest

from strokecoach.settings_context import SettingsContext
from strokecoach.ui_actions import action_categories, action_category_characters, action_random_character


def context(language="english", level="beginner"):
    ctx = SettingsContext(persist=False)
    ctx.set_language(language)
    ctx.set_level(level)
    return ctx


class CharacterPickerTests(unittest.TestCase):
    def test_categories_feed_the_character_list(self):
        ids = [cat.id for cat in action_categories("english")]
        self.assertIn("basic-letters", ids)
        chars = [c.character for c in action_category_characters("english", "basic-letters")]
        self.assertEqual(chars[:2], ["A", "B"])
        self.assertEqual(action_category_characters("english", "no-such-category"), [])

    def test_random_character_matches_level(self):
        ctx = context("korean", "intermediate")
        for seed in range(5):
            picked = action_random_character(ctx, rng=random.Random(seed))
            self.assertEqual(picked.difficulty, "intermediate")

    def test_random_character_when_level_has_none(self):
        picked = action_random_character(context("english", "advanced"), rng=random.Random(1))
        self.assertIsNotNone(picked)
        self.assertIn(picked.character, {"A", "B", "Hello", "World"})

    def test_random_character_is_repeatable_with_seed(self):
        ctx = context("chinese")
        first = action_random_character(ctx, rng=random.Random(3))
        again = action_random_character(ctx, rng=random.Random(3))
        self.assertEqual(first.character, again.character)

    def test_unknown_language(self):
        self.assertIsNone(action_random_character(context("klingon")))
        self.assertEqual(action_categories("klingon"), [])


if __name__ == "__main__":
    unittest.main()
