"""
PhotoBurn I/O Module

Handles image files, override files and processing reports.
"""

from .image_importer import ImageImporter, load_image, save_image
from .report_io import save_report, load_overrides, result_to_dict

__all__ = ['ImageImporter', 'load_image', 'save_image',
           'save_report', 'load_overrides', 'result_to_dict']
