"""
PhotoBurn Pipeline Settings

Process-wide knobs for the pipeline, read from ``PHOTOBURN_*``
environment variables.
"""

import logging
import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PipelineSettings:
    """Settings for the processing pipeline."""

    # Face detection
    face_detection_timeout: float = 5.0   # seconds before falling back to rules only

    # Automatic dithering decision
    auto_dither: bool = True
    dither_std_threshold: float = 60.0    # std-dev below which dithering kicks in
    dither_std_threshold_relaxed: float = 70.0  # cartoons, walnut and leather
    dither_low_contrast_std: float = 40.0  # below this Floyd-Steinberg is chosen
    default_dither_threshold: int = 128

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            face_detection_timeout=float(os.getenv("PHOTOBURN_FACE_TIMEOUT", "5.0")),
            auto_dither=_env_bool("PHOTOBURN_AUTO_DITHER", "true"),
            dither_std_threshold=float(os.getenv("PHOTOBURN_DITHER_STD_THRESHOLD", "60")),
            dither_std_threshold_relaxed=float(
                os.getenv("PHOTOBURN_DITHER_STD_THRESHOLD_RELAXED", "70")
            ),
            log_level=os.getenv("PHOTOBURN_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = None) -> logging.Logger:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=(level or PipelineSettings.from_env().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return logging.getLogger("photoburn")
