import enum
import unittest

from preamblegen.enums import (
    CanonicalList,
    Name,
    NameTableEntry,
    build_enum_table,
    canonical_list,
    generate_enum,
    generate_members,
    generate_name_table,
)
from preamblegen.errors import DuplicateNameError, InvalidNameError, SpecError


NAMES = ["RED", "GREEN", "BLUE", "ALPHA"]


class TestCanonicalList(unittest.TestCase):
    def test_preserves_order(self):
        lst = CanonicalList(NAMES)
        self.assertEqual([n.text for n in lst], NAMES)
        self.assertEqual(len(lst), 4)
        self.assertEqual(lst.index("BLUE"), 2)
        self.assertIn("GREEN", lst)
        self.assertNotIn("PURPLE", lst)

    def test_duplicate_is_rejected(self):
        with self.assertRaises(DuplicateNameError) as ctx:
            CanonicalList(["A", "B", "A"])
        self.assertEqual(ctx.exception.symbol, "A")
        self.assertEqual(ctx.exception.first, 0)
        self.assertEqual(ctx.exception.index, 2)
        self.assertIn("'A'", str(ctx.exception))

    def test_invalid_identifier(self):
        for bad in ["1ABC", "WITH SPACE", "", "A-B", "A\n", "OK\n"]:
            with self.assertRaises(InvalidNameError):
                CanonicalList(["OK", bad])

    def test_empty_list(self):
        with self.assertRaises(SpecError):
            CanonicalList([])

    def test_expand_applies_in_order(self):
        lst = canonical_list(NAMES)
        self.assertEqual(
            lst.expand(lambda n: f"const u8 MY_THING_{n} = {n};"),
            tuple(f"const u8 MY_THING_{n} = {n};" for n in NAMES),
        )

    def test_canonical_list_passthrough(self):
        lst = CanonicalList(NAMES)
        self.assertIs(canonical_list(lst), lst)

    def test_name_length_counts_terminator(self):
        self.assertEqual(Name("RED").length, 4)
        self.assertEqual(Name("RED").size, 3)


class TestGeneration(unittest.TestCase):
    def test_ordinals_and_names_are_aligned(self):
        lst = CanonicalList(NAMES)
        members = generate_members(lst)
        table = generate_name_table(lst)
        self.assertEqual(len(members), len(table))
        for i, name in enumerate(NAMES):
            self.assertEqual(members[i].ordinal, i)
            self.assertEqual(members[i].name.text, name)
            self.assertEqual(table[i], NameTableEntry(name, len(name) + 1))

    def test_generate_enum(self):
        Color = generate_enum("Color", CanonicalList(NAMES))
        self.assertTrue(issubclass(Color, enum.IntEnum))
        self.assertEqual([m.value for m in Color], [0, 1, 2, 3])
        self.assertEqual(Color.BLUE, 2)
        self.assertEqual(Color(3).name, "ALPHA")

    def test_reordering_updates_both_artifacts(self):
        reordered = ["ALPHA", "RED", "GREEN", "BLUE"]
        table = build_enum_table("Color", reordered)
        self.assertEqual(table.enum.ALPHA, 0)
        self.assertEqual(table.names[0].text, "ALPHA")
        for member in table.enum:
            self.assertEqual(table.name_of(member), member.name)

    def test_enum_table_lookup(self):
        table = build_enum_table("Color", NAMES)
        self.assertEqual(len(table), 4)
        self.assertEqual(table.lookup("GREEN"), table.enum.GREEN)
        self.assertEqual(table.name_of(1), "GREEN")
        with self.assertRaises(KeyError):
            table.lookup("PURPLE")
        with self.assertRaises(IndexError):
            table.name_of(4)

    def test_enum_table_rejects_duplicates(self):
        with self.assertRaises(DuplicateNameError):
            build_enum_table("Color", ["RED", "RED"])

    def test_bad_type_name(self):
        with self.assertRaises(InvalidNameError):
            build_enum_table("not a type", NAMES)

    def test_reserved_enum_member_names(self):
        for bad in ["_foo_", "__GREEN__"]:
            with self.assertRaises(InvalidNameError) as ctx:
                build_enum_table("Color", ["RED", bad, "BLUE"])
            self.assertEqual(ctx.exception.symbol, bad)

    def test_enum_members_match_name_table(self):
        table = build_enum_table("Color", ["RED", "_GREEN", "BLUE_"])
        self.assertEqual(len(table.enum), len(table.names))
        for ordinal, entry in enumerate(table.names):
            self.assertEqual(table.enum(ordinal).name, entry.text)

    def test_trailing_newline_is_not_an_identifier(self):
        with self.assertRaises(InvalidNameError):
            CanonicalList(["RED\n", "RED"])
        with self.assertRaises(InvalidNameError):
            build_enum_table("Color\n", NAMES)


if __name__ == "__main__":
    unittest.main()
