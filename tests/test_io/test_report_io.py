"""
Tests for override files and processing reports.
"""

import json
import os
import shutil
import tempfile
import unittest

from photoburn.core.pixel_buffer import PixelBuffer
from photoburn.core.settings import PipelineSettings
from photoburn.io.report_io import load_overrides, result_to_dict, save_report
from photoburn.pipeline import process_image


class TestReports(unittest.TestCase):
    """Test saving processing reports."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.result = process_image(PixelBuffer.filled(16, 16, 128), "walnut",
                                    settings=PipelineSettings())

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_result_to_dict(self):
        """Test the report content."""
        report = result_to_dict(self.result)
        self.assertEqual(report['image_type'], "photo")
        self.assertEqual(report['params']['dither_type'], "floydSteinberg")
        self.assertEqual(report['image_stats']['mean'], 128.0)
        self.assertEqual(sum(report['image_stats']['histogram']), 256)
        self.assertEqual(report['size'], {'width': 16, 'height': 16})

    def test_save_report(self):
        """Test the report is written as JSON with metadata."""
        path = os.path.join(self.tmpdir, "report.json")
        self.assertTrue(save_report(self.result, path, source="in.png"))
        with open(path, encoding="utf-8") as f:
            report = json.load(f)
        self.assertEqual(report['version'], "1.0")
        self.assertEqual(report['source'], "in.png")
        self.assertIn('saved_at', report)
        self.assertIn('adjustment_reasons', report['analysis'])

    def test_save_report_failure(self):
        """Test write failures return False and log an error."""
        path = os.path.join(self.tmpdir, "missing", "report.json")
        with self.assertLogs('photoburn.io.report_io', level='ERROR'):
            self.assertFalse(save_report(self.result, path))


class TestOverrides(unittest.TestCase):
    """Test loading override files."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _write(self, text):
        path = os.path.join(self.tmpdir, "overrides.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_load(self):
        """Test a JSON object is returned as a dict."""
        path = self._write('{"anchorGray": 90, "invert": true}')
        self.assertEqual(load_overrides(path), {"anchorGray": 90, "invert": True})

    def test_invalid_json(self):
        """Test malformed JSON returns None."""
        path = self._write('{"anchorGray": ')
        with self.assertLogs('photoburn.io.report_io', level='ERROR'):
            self.assertIsNone(load_overrides(path))

    def test_not_an_object(self):
        """Test a JSON array is rejected."""
        path = self._write('[1, 2]')
        with self.assertLogs('photoburn.io.report_io', level='ERROR'):
            self.assertIsNone(load_overrides(path))

    def test_missing_file(self):
        """Test a missing file returns None."""
        with self.assertLogs('photoburn.io.report_io', level='ERROR'):
            self.assertIsNone(load_overrides(os.path.join(self.tmpdir, "nope.json")))


if __name__ == '__main__':
    unittest.main()
