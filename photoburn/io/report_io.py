"""
Report File I/O for PhotoBurn

Reads override files and writes processing reports. Both are plain
JSON documents.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..pipeline import ProcessingResult

logger = logging.getLogger(__name__)

REPORT_VERSION = '1.0'


def result_to_dict(result: ProcessingResult) -> Dict[str, Any]:
    """Convert a ProcessingResult (minus pixel data) to a JSON-ready dict."""
    stats = result.image_stats
    return {
        'image_type': result.image_type.value if result.image_type else None,
        'was_inverted': result.was_inverted,
        'info': result.info,
        'params': result.params.to_dict(),
        'image_stats': {
            'mean': stats.mean,
            'std_dev': stats.std_dev,
            'peaks': [{'position': p.position, 'height': p.height} for p in stats.peaks],
            'valleys': list(stats.valleys),
            'histogram': [int(v) for v in stats.histogram],
        },
        'analysis': result.analysis.to_dict(),
        'size': {
            'width': result.processed_image.width,
            'height': result.processed_image.height,
        },
    }


def save_report(result: ProcessingResult, filepath: str,
                source: Optional[str] = None) -> bool:
    """
    Save a processing report.

    Args:
        result: The pipeline result to describe
        filepath: Path to save the file
        source: Optional input file name recorded in the report

    Returns:
        True if successful, False otherwise
    """
    try:
        report = result_to_dict(result)
        report['version'] = REPORT_VERSION
        report['saved_at'] = datetime.now().isoformat()
        if source is not None:
            report['source'] = source

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error saving report to {filepath}: {e}")
        return False


def load_overrides(filepath: str) -> Optional[Dict[str, Any]]:
    """
    Load processing overrides from a JSON object file.

    Args:
        filepath: Path to the overrides file

    Returns:
        Dict of override values if successful, None otherwise
    """
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            values = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading overrides from {filepath}: {e}")
        return None

    if not isinstance(values, dict):
        logger.error(f"Overrides file {filepath} must contain a JSON object")
        return None

    return values
