"""Tests for code generation and id helpers."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from tidyly.core.constants import CODE_ALPHABET
from tidyly.errors import ConflictError
from tidyly.utils import (
    generate_code,
    generate_unique_code,
    make_request_id,
    normalize_code,
)


class TestCodes(unittest.TestCase):
    def test_generate_code_uses_alphabet(self) -> None:
        code = generate_code(8)
        self.assertEqual(len(code), 8)
        self.assertTrue(all(ch in CODE_ALPHABET for ch in code))

    def test_generate_code_invite_length(self) -> None:
        self.assertEqual(len(generate_code(6)), 6)

    @patch("tidyly.utils.generate_code")
    def test_unique_code_retries_on_collision(self, mock_generate: MagicMock) -> None:
        mock_generate.side_effect = ["TAKEN001", "TAKEN002", "FREE0003"]
        is_taken = MagicMock(side_effect=lambda code: code.startswith("TAKEN"))

        code = generate_unique_code(8, is_taken, max_attempts=5)

        self.assertEqual(code, "FREE0003")
        self.assertEqual(is_taken.call_count, 3)

    @patch("tidyly.utils.generate_code", return_value="ABCDEFGH")
    def test_unique_code_gives_up_after_max_attempts(
        self, mock_generate: MagicMock
    ) -> None:
        with self.assertRaises(ConflictError) as ctx:
            generate_unique_code(8, lambda code: True, max_attempts=3)
        self.assertEqual(ctx.exception.code, "code_exhausted")
        self.assertEqual(mock_generate.call_count, 3)

    def test_normalize_code(self) -> None:
        self.assertEqual(normalize_code("  abcd1234 "), "ABCD1234")
        self.assertEqual(normalize_code(None), "")

    def test_request_ids_are_distinct(self) -> None:
        first = make_request_id("alice", "bob")
        second = make_request_id("alice", "bob")
        self.assertTrue(first.startswith("alice_bob_"))
        self.assertNotEqual(first, second)


if __name__ == "__main__":
    unittest.main()
