import unittest

from blobpack.errors import IntegerOverflow, ParseError
from blobpack.linker.expr import evaluate, match_expression, parse_expression


class TestNumbers(unittest.TestCase):
    def test_decimal_and_hex(self):
        self.assertEqual(parse_expression("89"), ("", 89))
        self.assertEqual(parse_expression("0xaa9"), ("", 0xAA9))
        self.assertEqual(parse_expression("0XFF"), ("", 255))

    def test_signed_literals(self):
        self.assertEqual(parse_expression("+5"), ("", 5))
        self.assertEqual(parse_expression("-0x10"), ("", -16))

    def test_bare_hex_prefix_falls_back_to_decimal(self):
        self.assertEqual(parse_expression("0x"), ("x", 0))

    def test_suffixes(self):
        self.assertEqual(evaluate("7K"), 7 * 1024)
        self.assertEqual(evaluate("2M"), 2 * 1024 * 1024)
        self.assertEqual(evaluate("0x10K"), 16 * 1024)

    def test_suffix_applies_once(self):
        self.assertEqual(parse_expression("1MK"), ("K", 1024 * 1024))
        self.assertEqual(parse_expression("0MK"), ("K", 0))

    def test_lowercase_suffix_is_not_a_suffix(self):
        self.assertEqual(parse_expression("4k"), ("k", 4))


class TestTerms(unittest.TestCase):
    def test_addition_and_subtraction(self):
        self.assertEqual(evaluate("3+7-0xa"), 0)
        self.assertEqual(evaluate("3 +7 - 0xa"), 0)
        self.assertEqual(evaluate("-3 +7 - 0xa"), -6)
        self.assertEqual(evaluate("3+7K-0xa"), 7161)

    def test_negation_and_grouping(self):
        self.assertEqual(evaluate("-3 -(7 - 0xa)"), 0)
        self.assertEqual(evaluate("-(-(7))"), 7)
        self.assertEqual(evaluate("-8"), -8)
        self.assertEqual(evaluate("-8--9"), 1)
        self.assertEqual(evaluate("- 4"), -4)
        self.assertEqual(evaluate("( 1024K - 0x100 )"), 1024 * 1024 - 0x100)

    def test_left_associative(self):
        self.assertEqual(evaluate("10 - 3 - 2"), 5)

    def test_dangling_operator_is_left_over(self):
        self.assertEqual(parse_expression("4 + "), (" + ", 4))
        self.assertEqual(parse_expression("4, LENGTH = 2"), (", LENGTH = 2", 4))

    def test_start_position(self):
        text = "LENGTH = 256K\n"
        self.assertEqual(match_expression(text, 9), (256 * 1024, 13))
        self.assertIsNone(match_expression(text, 0))


class TestErrors(unittest.TestCase):
    def test_no_expression(self):
        with self.assertRaises(ParseError):
            parse_expression("ORIGIN")
        with self.assertRaises(ParseError):
            parse_expression("")
        with self.assertRaises(ParseError):
            evaluate("(1 + 2")

    def test_trailing_text(self):
        with self.assertRaises(ParseError):
            evaluate("1MK")

    def test_overflow(self):
        with self.assertRaises(IntegerOverflow):
            evaluate("99999999999999999999999")
        with self.assertRaises(IntegerOverflow):
            evaluate("0x8000000000000000")
        with self.assertRaises(IntegerOverflow):
            evaluate("0x7fffffffffffffff + 1")
        with self.assertRaises(IntegerOverflow):
            evaluate("0x7fffffffffffffffM")

    def test_deep_nesting(self):
        with self.assertRaises(ParseError):
            evaluate("(" * 5000 + "1" + ")" * 5000)
        with self.assertRaises(ParseError):
            evaluate("-" * 5000 + "1")

    def test_largest_value(self):
        self.assertEqual(evaluate("0x7fffffffffffffff"), (1 << 63) - 1)
        self.assertEqual(evaluate("0x00000000000000000001"), 1)


if __name__ == "__main__":
    unittest.main()
