"""
Tests for the blending module of pride_overlay.
"""

import numpy as np
import pytest

from pride_overlay.blending import (
    blend_chunk,
    blend_images,
    default_chunk_count,
    plan_chunks,
    validate_blend_factor,
    validate_images,
)
from pride_overlay.core import validate_rgba
from pride_overlay.errors import DimensionMismatchError, InvalidBlendFactorError
from pride_overlay.flags import PrideFlag, create_pride_flag_overlay


def _pixel(rgba):
    return np.array([[rgba]], dtype=np.uint8)


class TestValidation:
    """Tests for the blend precondition checks."""

    def test_validate_images(self, rgba_image):
        """Test the image validation helper function."""
        # Should not raise for same shape RGBA images
        validate_images(rgba_image, np.copy(rgba_image))

        # Should raise for invalid images (not RGBA)
        with pytest.raises(ValueError, match="must have 4 channels"):
            validate_images(rgba_image, rgba_image[:, :, :3])

        # Should raise for different size images
        with pytest.raises(DimensionMismatchError, match="same dimensions"):
            validate_images(rgba_image, rgba_image[:-10, :-10])

    @pytest.mark.parametrize(
        "image_size, flag_size",
        [((4, 3), (3, 4)), ((1, 1), (2, 1)), ((1, 1), (1, 2)), ((16, 9), (15, 9)), ((5, 5), (50, 50))],
    )
    def test_dimension_mismatch(self, image_size, flag_size):
        """Any pair of distinct sizes fails before computing."""
        image = np.zeros((image_size[1], image_size[0], 4), dtype=np.uint8)
        flag = np.zeros((flag_size[1], flag_size[0], 4), dtype=np.uint8)

        with pytest.raises(DimensionMismatchError) as excinfo:
            blend_images(image, flag, 0.5)

        assert excinfo.value.image_size == image_size
        assert excinfo.value.flag_size == flag_size
        assert isinstance(excinfo.value, ValueError)

    @pytest.mark.parametrize("factor", [-0.01, 1.0001, 2, float("nan"), float("inf"), "half", None])
    def test_invalid_blend_factor(self, factor):
        """Out of range factors are rejected, not clamped."""
        with pytest.raises(InvalidBlendFactorError):
            validate_blend_factor(factor)

        image = np.zeros((2, 2, 4), dtype=np.uint8)
        with pytest.raises(InvalidBlendFactorError):
            blend_images(image, image, factor)

    def test_valid_blend_factor(self):
        """Range ends and numeric strings are accepted."""
        assert validate_blend_factor(0) == 0.0
        assert validate_blend_factor(1) == 1.0
        assert validate_blend_factor("0.25") == 0.25


class TestBlendImages:
    """Tests for the blend_images function."""

    def test_reference_pixel(self):
        """A half blend towards transparent black truncates each channel."""
        result = blend_images(_pixel((100, 150, 200, 255)), _pixel((0, 0, 0, 0)), 0.5)
        assert result.tobytes() == bytes([50, 75, 100, 127])

    def test_factor_zero_is_identity(self, rgba_image):
        """Factor 0.0 returns the image bit for bit."""
        flag = create_pride_flag_overlay(PrideFlag.RAINBOW, rgba_image.shape[1], rgba_image.shape[0])
        result = blend_images(rgba_image, flag, 0.0)
        assert np.array_equal(result, rgba_image)

    def test_factor_one_is_flag(self, rgba_image):
        """Factor 1.0 returns the flag bit for bit."""
        flag = create_pride_flag_overlay(PrideFlag.AGENDER, rgba_image.shape[1], rgba_image.shape[0])
        result = blend_images(rgba_image, flag, 1.0)
        assert np.array_equal(result, flag)

    def test_quarter_blend(self, rgba_image, checkerboard_rgba):
        """Test with factor 0.25 against the truncating formula."""
        image = rgba_image[:64, :64]
        result = blend_images(image, checkerboard_rgba, 0.25)

        validate_rgba(result)
        assert result.shape == image.shape
        expected = np.trunc(
            image.astype(np.float32) * np.float32(0.75) + checkerboard_rgba.astype(np.float32) * np.float32(0.25)
        ).astype(np.uint8)
        assert np.array_equal(result, expected)

    @pytest.mark.parametrize(
        "image, flag, factor, expected",
        [
            # 1 - 0.9 in double precision lands just under 0.1 and truncates a step lower
            ((10, 20, 30, 40), (0, 0, 0, 0), 0.9, (1, 2, 3, 4)),
            ((100, 150, 200, 255), (0, 0, 0, 0), 0.5, (50, 75, 100, 127)),
            ((0, 0, 0, 0), (10, 20, 30, 40), 0.1, (1, 2, 3, 4)),
        ],
    )
    def test_single_precision_truncation(self, image, flag, factor, expected):
        """Truncation matches single-precision arithmetic bit for bit."""
        result = blend_images(_pixel(image), _pixel(flag), factor)
        assert tuple(result[0, 0]) == expected

    def test_extremes_stay_in_range(self):
        """Blending full-intensity channels never overflows."""
        white = np.full((3, 3, 4), 255, dtype=np.uint8)
        for factor in (0.0, 0.25, 0.5, 0.75, 1.0):
            assert np.array_equal(blend_images(white, white, factor), white)

    def test_inputs_not_modified(self, noise_pair):
        """Blending allocates a new buffer and leaves the inputs alone."""
        image, flag = noise_pair
        image_before, flag_before = image.copy(), flag.copy()

        result = blend_images(image, flag, 0.6, num_chunks=4)

        assert result is not image
        assert not np.shares_memory(result, image)
        assert np.array_equal(image, image_before)
        assert np.array_equal(flag, flag_before)

    def test_read_only_inputs(self, noise_pair):
        """Read-only snapshots can be blended."""
        image, flag = noise_pair
        image.setflags(write=False)
        flag.setflags(write=False)

        result = blend_images(image, flag, 0.3, num_chunks=3)
        assert result.flags.writeable

    def test_non_contiguous_input(self, rgba_image):
        """Strided views blend the same as their contiguous copies."""
        view = rgba_image[::2, ::3]
        flag = create_pride_flag_overlay(PrideFlag.BISEXUAL, view.shape[1], view.shape[0])

        assert np.array_equal(
            blend_images(view, flag, 0.4, num_chunks=5),
            blend_images(np.ascontiguousarray(view), flag, 0.4, num_chunks=1),
        )


class TestChunking:
    """Tests for the parallel chunk decomposition."""

    def test_plan_covers_range(self):
        """Chunks are contiguous, ordered, and differ in size by at most one."""
        for pixel_count in (1, 2, 7, 100, 101):
            for num_chunks in range(1, pixel_count + 3):
                chunks = plan_chunks(pixel_count, num_chunks)

                assert chunks[0][0] == 0
                assert chunks[-1][1] == pixel_count
                for (_, stop), (start, _) in zip(chunks, chunks[1:]):
                    assert stop == start

                sizes = [stop - start for start, stop in chunks]
                assert min(sizes) >= 1
                assert max(sizes) - min(sizes) <= 1
                assert len(chunks) == min(num_chunks, pixel_count)

    def test_plan_edge_cases(self):
        """Empty ranges have no chunks; nonsense counts are clamped."""
        assert plan_chunks(0, 4) == []
        assert plan_chunks(5, 0) == [(0, 5)]

    def test_default_chunk_count(self):
        """Small images run as one chunk, large ones are split."""
        assert default_chunk_count(1) == 1
        assert default_chunk_count(1 << 16) == 1
        assert default_chunk_count((1 << 16) + 1) == 2

    def test_rechunking_is_byte_identical(self, noise_pair):
        """Every chunk count from 1 to the pixel count gives the same bytes."""
        image, flag = noise_pair
        pixel_count = image.shape[0] * image.shape[1]

        for factor in (0.0, 0.3, 0.5, 0.77, 1.0):
            reference = blend_images(image, flag, factor, num_chunks=1)
            for num_chunks in range(1, pixel_count + 1):
                result = blend_images(image, flag, factor, num_chunks=num_chunks)
                assert result.tobytes() == reference.tobytes(), (factor, num_chunks)

    def test_worker_count_does_not_matter(self, rgba_image):
        """The output is independent of the thread count."""
        flag = create_pride_flag_overlay(PrideFlag.ASEXUAL, rgba_image.shape[1], rgba_image.shape[0])
        reference = blend_images(rgba_image, flag, 0.42, num_chunks=1)

        for max_workers in (1, 2, 8):
            result = blend_images(rgba_image, flag, 0.42, num_chunks=16, max_workers=max_workers)
            assert np.array_equal(result, reference)

    def test_blend_chunk_writes_only_its_slice(self):
        """blend_chunk fills the output slice it is given."""
        image = np.full((6, 4), 200, dtype=np.uint8)
        flag = np.zeros((6, 4), dtype=np.uint8)
        out = np.zeros((6, 4), dtype=np.uint8)

        blend_chunk(image[2:4], flag[2:4], 0.5, out[2:4])

        assert np.all(out[2:4] == 100)
        assert np.all(out[:2] == 0)
        assert np.all(out[4:] == 0)
