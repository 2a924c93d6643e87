from __future__ import annotations

import unittest

from PVLENS.server.utils.services.text.phonetics import soundex


class SoundexTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_reference_codes(self) -> None:
        self.assertEqual(soundex("Robert"), "R163")
        self.assertEqual(soundex("Rupert"), "R163")
        self.assertEqual(soundex("Tymczak"), "T522")
        self.assertEqual(soundex("Pfister"), "P236")

    # ------------------------------------------------------------------
    def test_h_and_w_do_not_separate_equal_codes(self) -> None:
        self.assertEqual(soundex("Ashcraft"), "A261")
        self.assertEqual(soundex("Honeyman"), "H555")

    # ------------------------------------------------------------------
    def test_short_words_are_zero_padded(self) -> None:
        self.assertEqual(soundex("Pain"), "P500")
        self.assertEqual(soundex("a"), "A000")

    # ------------------------------------------------------------------
    def test_case_and_non_letters_are_ignored(self) -> None:
        self.assertEqual(soundex("diarrhea"), soundex("DIARRHOEA"))
        self.assertEqual(soundex("dry-eye"), soundex("Dry eye"))
        self.assertEqual(soundex("  headache 2 "), "H320")

    # ------------------------------------------------------------------
    def test_input_without_letters_has_no_code(self) -> None:
        self.assertEqual(soundex(""), "")
        self.assertEqual(soundex("123 !"), "")
        self.assertEqual(soundex(None), "")

    # ------------------------------------------------------------------
    def test_misspellings_share_a_code(self) -> None:
        self.assertEqual(soundex("hedache"), soundex("Headache"))
        self.assertNotEqual(soundex("nausea"), soundex("Dyspepsia"))


if __name__ == "__main__":
    unittest.main()
