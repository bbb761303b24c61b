"""
Sign Catalog Tests
==================
"""

import dataclasses
import unittest

from hand_to_heart.signs import CSL_SIGNS, format_sign_names, get_sign


class TestCatalog(unittest.TestCase):

    def test_ten_signs_in_order(self):
        self.assertEqual(
            [sign.id for sign in CSL_SIGNS],
            ['hello', 'thank_you', 'love', 'home', 'friend', 'happy', 'sad', 'dream', 'flower', 'peace']
        )

    def test_ids_are_unique_and_fields_filled(self):
        self.assertEqual(len({sign.id for sign in CSL_SIGNS}), len(CSL_SIGNS))
        for sign in CSL_SIGNS:
            with self.subTest(sign=sign.id):
                self.assertTrue(sign.name)
                self.assertTrue(sign.chinese_name)
                self.assertTrue(sign.description)
                self.assertTrue(sign.instruction)

    def test_signs_are_immutable(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            CSL_SIGNS[0].name = "Bye"

    def test_get_sign(self):
        self.assertEqual(get_sign('thank_you').chinese_name, '谢谢')
        self.assertIsNone(get_sign('goodbye'))

    def test_label_and_names(self):
        self.assertEqual(get_sign('hello').label, 'Hello (你好)')
        self.assertEqual(
            format_sign_names([get_sign('hello'), get_sign('love')]),
            'Hello (你好), Love (爱)'
        )
        self.assertEqual(format_sign_names([]), '')


if __name__ == "__main__":
    unittest.main()
