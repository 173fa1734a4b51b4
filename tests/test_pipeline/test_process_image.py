"""
Tests for the end-to-end processing pipeline.
"""

import asyncio
import unittest

import numpy as np

from photoburn.core.params import DitheringMethod, ImageType, ProcessingParams
from photoburn.core.pixel_buffer import PixelBuffer
from photoburn.core.settings import PipelineSettings
from photoburn.image.face_detection import FaceDetection
from photoburn.image.tone import invert, to_grayscale
from photoburn.pipeline import (
    ProcessingOverrides, process_image, process_image_async, process_image_with_custom_params
)

SETTINGS = PipelineSettings()


def noise_image(size: int = 48, seed: int = 0) -> PixelBuffer:
    rng = np.random.default_rng(seed)
    return PixelBuffer.from_array(rng.integers(0, 256, size=(size, size, 4), dtype=np.uint8))


def uniform_image() -> PixelBuffer:
    return PixelBuffer.filled(32, 32, 128)


class StubFaceDetector:
    """Detector that always finds one face."""

    async def detect_faces(self, image):
        return [FaceDetection(box=(1, 1, 8, 8))]


class TestProcessImage(unittest.TestCase):
    """Test the automatic pipeline."""

    def test_output_shape_and_alpha(self):
        """Test the output keeps the size and alpha of the input."""
        image = noise_image()
        result = process_image(image, "walnut", settings=SETTINGS)
        self.assertEqual(result.processed_image.width, image.width)
        self.assertEqual(result.processed_image.height, image.height)
        np.testing.assert_array_equal(result.processed_image.alpha, image.alpha)
        self.assertEqual(result.gray_image, to_grayscale(image))

    def test_input_not_modified(self):
        """Test the source image is unchanged after processing."""
        image = noise_image()
        before = image.pixels.copy()
        process_image(image, "acrylic", "light", "Diode", settings=SETTINGS)
        np.testing.assert_array_equal(image.pixels, before)

    def test_flat_image_is_dithered(self):
        """Test a flat image is dithered with Floyd-Steinberg."""
        result = process_image(uniform_image(), "walnut", settings=SETTINGS)
        self.assertEqual(result.image_type, ImageType.PHOTO)
        self.assertTrue(result.params.dither_enabled)
        self.assertEqual(result.params.dither_type, DitheringMethod.FLOYD_STEINBERG)
        self.assertTrue(set(np.unique(result.processed_image.gray)) <= {0, 255})

    def test_fiber_never_auto_dithers(self):
        """Test fiber lasers get the tone-mapped image without dithering."""
        result = process_image(uniform_image(), "walnut", laser_type="Fiber", settings=SETTINGS)
        self.assertFalse(result.params.dither_enabled)
        self.assertTrue(np.all(result.processed_image.gray == 138))

    def test_stat_adjusted_params(self):
        """Test preset values are tuned to the image statistics."""
        result = process_image(uniform_image(), "walnut", settings=SETTINGS)
        self.assertEqual(result.params.brightness, -5)
        self.assertAlmostEqual(result.params.contrast, 1.4 * 1.15)
        self.assertEqual(result.params.sharpness, 50)
        self.assertEqual(result.params.anchor_gray, 84)

    def test_metal_anchor_boost(self):
        """Test metal materials raise the automatic anchor."""
        result = process_image(uniform_image(), "stainless_steel", "dark", settings=SETTINGS)
        self.assertEqual(result.params.anchor_gray, 97)

    def test_analysis(self):
        """Test the analysis explains the decisions."""
        result = process_image(uniform_image(), "walnut", settings=SETTINGS)
        self.assertTrue(result.analysis.image_summary.startswith("Detected type: photo."))
        self.assertEqual(result.analysis.image_type_detection['image_type'], "photo")
        self.assertEqual(result.analysis.image_type_detection['source'], "classifier")
        self.assertEqual(result.analysis.adjustment_strategy['strategy_type'], "photo")
        self.assertTrue(any(r.startswith("[Dither]") for r in result.analysis.adjustment_reasons))
        self.assertIn("dithering on", result.info)

    def test_face_detector_portrait(self):
        """Test a detected face switches to the portrait strategy."""
        result = process_image(noise_image(), "leather", face_detector=StubFaceDetector(),
                               settings=SETTINGS)
        self.assertEqual(result.image_type, ImageType.PORTRAIT)

    def test_unknown_material_uses_defaults(self):
        """Test an unknown material still processes."""
        with self.assertLogs('photoburn.materials.presets', level='WARNING'):
            result = process_image(uniform_image(), "unobtainium", settings=SETTINGS)
        self.assertEqual(result.params.level_in_low, 0)

    def test_auto_dither_disabled(self):
        """Test the dithering decision can be switched off in settings."""
        result = process_image(uniform_image(), "walnut",
                               settings=PipelineSettings(auto_dither=False))
        self.assertFalse(result.params.dither_enabled)
        self.assertEqual(len(np.unique(result.processed_image.gray)), 1)

    def test_async_matches_sync(self):
        """Test the awaitable form gives the same result."""
        image = noise_image(seed=3)
        sync_result = process_image(image, "metal_card", settings=SETTINGS)
        async_result = asyncio.run(process_image_async(image, "metal_card", settings=SETTINGS))
        self.assertEqual(async_result.processed_image, sync_result.processed_image)
        self.assertEqual(async_result.image_type, sync_result.image_type)


class TestOverrides(unittest.TestCase):
    """Test caller overrides."""

    def test_known_image_type(self):
        """Test a supplied type skips classification."""
        result = process_image(uniform_image(), "walnut",
                               overrides={"known_image_type": "cartoon"}, settings=SETTINGS)
        self.assertEqual(result.image_type, ImageType.CARTOON)
        self.assertEqual(result.params.dither_type, DitheringMethod.ORDERED)
        self.assertEqual(result.analysis.image_type_detection['source'], "caller")

    def test_anchor_gray(self):
        """Test a fixed anchor replaces the automatic one and is clamped."""
        result = process_image(uniform_image(), "walnut", overrides={"anchorGray": 90},
                               settings=SETTINGS)
        self.assertEqual(result.params.anchor_gray, 90)
        result = process_image(uniform_image(), "walnut", overrides={"anchor_gray": 300},
                               settings=SETTINGS)
        self.assertEqual(result.params.anchor_gray, 255)

    def test_invert(self):
        """Test inversion is applied last."""
        image = noise_image(seed=5)
        plain = process_image(image, "walnut", settings=SETTINGS)
        inverted = process_image(image, "walnut", overrides=ProcessingOverrides(invert=True),
                                 settings=SETTINGS)
        self.assertTrue(inverted.was_inverted)
        self.assertFalse(plain.was_inverted)
        self.assertEqual(inverted.processed_image, invert(plain.processed_image))

    def test_force_dither_off(self):
        """Test dithering can be forced off."""
        result = process_image(uniform_image(), "walnut", overrides={"dither_enabled": False},
                               settings=SETTINGS)
        self.assertFalse(result.params.dither_enabled)
        self.assertEqual(len(np.unique(result.processed_image.gray)), 1)

    def test_force_dither_method(self):
        """Test a forced method and threshold are used as given."""
        overrides = {"dither_enabled": True, "dither_type": "bayer", "dither_threshold": 90}
        result = process_image(noise_image(), "walnut", laser_type="Fiber", overrides=overrides,
                               settings=SETTINGS)
        self.assertTrue(result.params.dither_enabled)
        self.assertEqual(result.params.dither_type, DitheringMethod.BAYER)
        self.assertEqual(result.params.dither_threshold, 90)

    def test_dither_type_with_automatic_decision(self):
        """Test a preferred method is used when dithering is chosen automatically."""
        result = process_image(uniform_image(), "walnut", overrides={"ditherType": "atkinson"},
                               settings=SETTINGS)
        self.assertTrue(result.params.dither_enabled)
        self.assertEqual(result.params.dither_type, DitheringMethod.ATKINSON)

    def test_param_override(self):
        """Test other parameter keys replace the adjusted preset values."""
        result = process_image(uniform_image(), "walnut",
                               overrides={"sharpness": 0, "contrast": 2.0, "unknown": 1},
                               settings=SETTINGS)
        self.assertEqual(result.params.sharpness, 0)
        self.assertEqual(result.params.contrast, 2.0)

    def test_overrides_from_dict(self):
        """Test flat mappings are split into overrides and parameters."""
        overrides = ProcessingOverrides.from_dict({
            "anchorGray": 70, "knownImageType": "portrait", "invert": True, "levelInLow": 5,
        })
        self.assertEqual(overrides.anchor_gray, 70)
        self.assertEqual(overrides.known_image_type, ImageType.PORTRAIT)
        self.assertTrue(overrides.invert)
        self.assertEqual(overrides.params, {"level_in_low": 5})
        self.assertFalse(overrides.forces_dither)


class TestCustomParams(unittest.TestCase):
    """Test processing with a caller-supplied parameter record."""

    def test_default_params_identity(self):
        """Test neutral parameters return the grayscale image."""
        image = noise_image(seed=9)
        result = process_image_with_custom_params(image, {})
        self.assertEqual(result.processed_image, result.gray_image)
        self.assertIsNone(result.image_type)

    def test_params_applied_verbatim(self):
        """Test no automatic adjustments are made."""
        params = ProcessingParams(brightness=10, contrast=1.2, dither_enabled=True,
                                  dither_type=DitheringMethod.ORDERED)
        result = process_image_with_custom_params(uniform_image(), params)
        self.assertEqual(result.params, params.clamped())
        self.assertTrue(set(np.unique(result.processed_image.gray)) <= {0, 255})


if __name__ == '__main__':
    unittest.main()
