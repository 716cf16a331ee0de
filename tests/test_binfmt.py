import unittest

from preamblegen.binfmt import (
    WIDTHS,
    BinaryFormat,
    binary_chars,
    binary_format,
    binary_pattern,
    format_binary,
)
from preamblegen.errors import SpecError, WidthError

SAMPLES = [0, 1, 0xB0, 0xFF, 0x1234, 0xDEADBEEF, 0x0123456789ABCDEF, (1 << 64) - 1, 1 << 70, -1]


class TestBinaryFormat(unittest.TestCase):
    def test_byte_example(self):
        fmt = binary_format(0b10110000, 8)
        self.assertEqual(fmt.pattern, "0b%c%c%c%c%c%c%c%c")
        self.assertEqual(list(fmt.values), ["1", "0", "1", "1", "0", "0", "0", "0"])
        self.assertEqual(str(fmt), "0b10110000")

    def test_patterns(self):
        byte = "%c" * 8
        self.assertEqual(binary_pattern(16), "0b" + byte + "_" + byte)
        self.assertEqual(binary_pattern(32), "0b" + "_".join([byte] * 4))
        self.assertEqual(binary_pattern(64, prefix="", delimiter=" "), " ".join([byte] * 8))

    def test_lengths_match_width(self):
        for width in WIDTHS:
            for v in SAMPLES:
                fmt = binary_format(v, width)
                self.assertEqual(len(fmt.values), width)
                self.assertEqual(fmt.pattern.count("%c"), width)

    def test_big_endian_expansion(self):
        for width in WIDTHS:
            for v in SAMPLES:
                expected = format(v % (1 << width), f"0{width}b")
                self.assertEqual("".join(binary_chars(v, width)), expected)

    def test_composition_law(self):
        for width in (16, 32, 64):
            half = width // 2
            for v in SAMPLES:
                high = binary_chars(v >> half, half)
                low = binary_chars(v, half)
                self.assertEqual(binary_chars(v, width), high + low)

    def test_round_trip(self):
        for width in WIDTHS:
            for v in SAMPLES:
                self.assertEqual(binary_format(v, width).to_int(), v % (1 << width))

    def test_truncates_high_bits(self):
        self.assertEqual(format_binary(0x1FF, 8), "0b11111111")
        self.assertEqual(format_binary(0x100, 8), "0b00000000")

    def test_render_16(self):
        self.assertEqual(format_binary(0x8001, 16), "0b10000000_00000001")

    def test_invalid_width(self):
        for width in [0, 4, 12, 128, 8.0, "8", True]:
            with self.assertRaises(WidthError):
                binary_format(1, width)

    def test_invalid_literals(self):
        with self.assertRaises(SpecError):
            binary_pattern(8, prefix="%d")
        with self.assertRaises(SpecError):
            binary_pattern(8, delimiter=None)

    def test_mismatched_pair_rejected(self):
        with self.assertRaises(SpecError):
            BinaryFormat("0b%c%c", ("1",), 8)


if __name__ == "__main__":
    unittest.main()
