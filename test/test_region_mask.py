import unittest

import numpy as np

from errors import InvalidRegion, RegionOutOfBounds
from region_mask import (
    build_mask,
    dilate_mask,
    prepare_mask,
    selected_pixel_count,
    validate_region,
)
from watermark_types import Region


class TestBuildMask(unittest.TestCase):
    def test_selected_count_matches_region_area(self):
        regions = [
            Region(0, 0, 1, 1),
            Region(5, 7, 10, 3),
            Region(40, 30, 24, 18),
            Region(0, 0, 64, 48),
        ]
        for region in regions:
            mask = build_mask(64, 48, region)
            self.assertEqual(mask.shape, (48, 64))
            self.assertEqual(mask.dtype, np.uint8)
            self.assertEqual(selected_pixel_count(mask), region.width * region.height)

    def test_mask_is_binary_and_placed_correctly(self):
        mask = build_mask(20, 10, Region(2, 3, 4, 5))
        self.assertEqual(set(np.unique(mask)), {0, 255})
        self.assertEqual(mask[3, 2], 255)
        self.assertEqual(mask[7, 5], 255)
        self.assertEqual(mask[2, 2], 0)
        self.assertEqual(mask[3, 6], 0)

    def test_out_of_bounds_reports_dimensions(self):
        with self.assertRaises(RegionOutOfBounds) as ctx:
            build_mask(64, 48, Region(60, 10, 8, 8))
        message = ctx.exception.message
        self.assertIn('64x48', message)
        self.assertIn('(60, 10) + 8x8', message)
        self.assertEqual(ctx.exception.frame_width, 64)
        self.assertEqual(ctx.exception.frame_height, 48)

    def test_out_of_bounds_bottom_edge(self):
        with self.assertRaises(RegionOutOfBounds):
            build_mask(64, 48, Region(0, 40, 10, 9))

    def test_invalid_dimensions(self):
        for region in [Region(-1, 0, 5, 5), Region(0, -1, 5, 5),
                       Region(0, 0, 0, 5), Region(0, 0, 5, -2)]:
            with self.assertRaises(InvalidRegion) as ctx:
                validate_region(64, 48, region)
            self.assertNotIsInstance(ctx.exception, RegionOutOfBounds)

    def test_bounds_error_names_the_media(self):
        with self.assertRaises(RegionOutOfBounds) as ctx:
            validate_region(10, 10, Region(5, 5, 10, 10), what='Video')
        self.assertIn('Video: 10x10', ctx.exception.message)


class TestDilateMask(unittest.TestCase):
    def setUp(self):
        self.mask = build_mask(64, 48, Region(20, 15, 10, 8))

    def test_zero_margin_is_identity(self):
        result = dilate_mask(self.mask, 0)
        self.assertTrue(np.array_equal(result, self.mask))

    def test_negative_margin_is_identity(self):
        self.assertTrue(np.array_equal(dilate_mask(self.mask, -3), self.mask))

    def test_dilation_grows_selection(self):
        before = selected_pixel_count(self.mask)
        for k in (1, 2, 3, 7):
            after = selected_pixel_count(dilate_mask(self.mask, k))
            self.assertGreaterEqual(after, before)
            self.assertGreater(after, before)

    def test_input_not_mutated(self):
        original = self.mask.copy()
        dilate_mask(self.mask, 4)
        self.assertTrue(np.array_equal(self.mask, original))

    def test_elliptical_kernel(self):
        mask = np.zeros((41, 41), dtype=np.uint8)
        mask[20, 20] = 255
        dilated = dilate_mask(mask, 2)
        self.assertEqual(dilated[20, 22], 255)
        self.assertEqual(dilated[22, 20], 255)
        self.assertEqual(dilated[21, 21], 255)
        self.assertEqual(dilated[22, 22], 0)
        self.assertEqual(dilated[20, 23], 0)

    def test_dilation_at_frame_edge_stays_in_frame(self):
        mask = build_mask(32, 32, Region(0, 0, 4, 4))
        dilated = dilate_mask(mask, 3)
        self.assertEqual(dilated.shape, (32, 32))
        self.assertEqual(dilated[0, 0], 255)
        self.assertEqual(dilated[31, 31], 0)

    def test_deterministic(self):
        a = dilate_mask(self.mask, 5)
        b = dilate_mask(self.mask, 5)
        self.assertTrue(np.array_equal(a, b))

    def test_prepare_mask_combines_both_steps(self):
        prepared = prepare_mask(64, 48, Region(20, 15, 10, 8), 3)
        expected = dilate_mask(build_mask(64, 48, Region(20, 15, 10, 8)), 3)
        self.assertTrue(np.array_equal(prepared, expected))


if __name__ == '__main__':
    unittest.main()
