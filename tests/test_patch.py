import unittest

from blobpack.errors import RegionNotFound, ReservedSpaceExceedsRegion
from blobpack.linker.expr import evaluate
from blobpack.linker.patch import patch_link_script
from blobpack.linker.region import find_memory_region

MEMORY_X = """\
MEMORY {
    BOOT2 : ORIGIN = 0x10000000, LENGTH = 0x100
    FLASH : ORIGIN = 0x10000100, LENGTH = 1024K - 0x100 /* 2 MiB part */
    RAM   : ORIGIN = 0x20000000, LENGTH = 256K
}
"""


class TestPatchLinkScript(unittest.TestCase):
    def test_carves_from_end_of_region(self):
        res = patch_link_script(MEMORY_X, "FLASH", 0x200)
        self.assertEqual(res.new_length, 1024 * 1024 - 0x100 - 0x200)
        self.assertEqual(res.new_length, 1047808)
        self.assertEqual(res.base_address, 0x10000100 + 1047808)
        self.assertEqual(res.reserved, 0x200)

    def test_only_length_changes(self):
        res = patch_link_script(MEMORY_X, "FLASH", 0x200)
        expected = MEMORY_X.replace("LENGTH = 1024K - 0x100", "LENGTH = 0xffd00")
        self.assertEqual(res.text, expected)

    def test_patched_script_reparses(self):
        res = patch_link_script(MEMORY_X, "FLASH", 0x1000)
        region = find_memory_region(res.text, "FLASH").region
        self.assertEqual(region.origin, 0x10000100)
        self.assertEqual(region.length, res.new_length)
        self.assertEqual(find_memory_region(res.text, "RAM").region.length, 256 * 1024)

    def test_attribute_and_origin_text_kept(self):
        text = "MEMORY\n{\n\tFLASH (rx) : ORIGIN = 0x08000000 + 16K, LENGTH = 512K - 16K\r\n}\r\n"
        res = patch_link_script(text, "FLASH", 4096)
        self.assertIn("\tFLASH (rx) : ORIGIN = 0x08000000 + 16K, LENGTH = 0x7b000\r\n", res.text)
        self.assertEqual(res.base_address, 0x08000000 + 16 * 1024 + 0x7B000)

    def test_zero_reservation(self):
        res = patch_link_script(MEMORY_X, "FLASH", 0)
        self.assertEqual(res.text, MEMORY_X)
        self.assertEqual(res.new_length, 1024 * 1024 - 0x100)
        self.assertEqual(evaluate("1024K - 0x100"), res.new_length)
        self.assertEqual(res.base_address, 0x10000100 + 1024 * 1024 - 0x100)

    def test_whole_region(self):
        res = patch_link_script(MEMORY_X, "BOOT2", 0x100)
        self.assertEqual(res.new_length, 0)
        self.assertIn("BOOT2 : ORIGIN = 0x10000000, LENGTH = 0x0\n", res.text)
        self.assertEqual(res.base_address, 0x10000000)

    def test_reservation_too_large(self):
        with self.assertRaises(ReservedSpaceExceedsRegion):
            patch_link_script(MEMORY_X, "BOOT2", 0x101)

    def test_negative_region_length(self):
        text = "FLASH : ORIGIN = 0x08000000, LENGTH = 16K - 32K\n"
        with self.assertRaises(ReservedSpaceExceedsRegion) as cm:
            patch_link_script(text, "FLASH", 0)
        self.assertIn("negative LENGTH (-16384)", str(cm.exception))

    def test_reservation_too_large_message(self):
        with self.assertRaises(ReservedSpaceExceedsRegion) as cm:
            patch_link_script(MEMORY_X, "BOOT2", 0x101)
        self.assertIn("need 0x101 bytes", str(cm.exception))
        self.assertIn("only 0x100 bytes", str(cm.exception))

    def test_negative_reservation(self):
        with self.assertRaises(ValueError):
            patch_link_script(MEMORY_X, "FLASH", -1)

    def test_unknown_region(self):
        with self.assertRaises(RegionNotFound):
            patch_link_script(MEMORY_X, "QSPI", 0)


if __name__ == "__main__":
    unittest.main()
