import unittest

from nautical_chart_decoder.utils.s57_utils import S57Utils


class TestS57Utils(unittest.TestCase):
    """Unit tests for the S57Utils class."""

    def test_long_name(self):
        """Test that a long name packs FIDS, FIDN and AGEN."""
        name = S57Utils.long_name(550, 123456, 1)
        self.assertEqual(name, (1 << 48) | (123456 << 16) | 550)
        self.assertEqual(S57Utils.split_long_name(name), (550, 123456, 1))

    def test_vector_key(self):
        key = S57Utils.vector_key(130, 42)
        self.assertEqual(key & 0xFFFF, 0)
        self.assertEqual(S57Utils.split_vector_key(key + 3), (130, 42, 3))

    def test_pointer_key_matches_vector_key(self):
        """Test that a NAME read little-endian resolves to the VRID key."""
        raw = int.from_bytes(bytes([120]) + (77).to_bytes(4, 'little'), 'little')
        self.assertEqual(S57Utils.pointer_key(raw), S57Utils.vector_key(120, 77))

    def test_object_class_lookup(self):
        self.assertEqual(S57Utils.object_class_acronym(129), 'SOUNDG')
        self.assertEqual(S57Utils.object_class_code('lights'), 75)
        self.assertIsNone(S57Utils.object_class_acronym(9999))
        self.assertIsNone(S57Utils.object_class_code('NOTHING'))

    def test_usage_band(self):
        self.assertEqual(S57Utils.usage_band('US5FL10M.000'), 'Harbour')
        self.assertEqual(S57Utils.usage_band('DK1OVERV.000'), 'Overview')
        self.assertIsNone(S57Utils.usage_band('US'))
        self.assertIsNone(S57Utils.usage_band('USXABCDE.000'))

    def test_name_list_to_bands(self):
        bands = S57Utils.name_list_to_bands(['US5FL10M', 'US3EC08M', 'US5FL11M', 'bad'])
        self.assertEqual(bands, {'Coastal': ['US3EC08M'], 'Harbour': ['US5FL10M', 'US5FL11M']})
        self.assertEqual(S57Utils.name_list_to_bands([]), {})


if __name__ == '__main__':
    unittest.main()
