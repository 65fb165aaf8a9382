"""Worst-case stack usage analyzer for AVR firmware images."""

from __future__ import annotations

__version__ = "0.3.0"

from .analysis import StackAnalysis, StackUsage, analyze
from .image import DecodeError, FirmwareImage, load_image, parse_hex

__all__ = [
    "DecodeError",
    "FirmwareImage",
    "StackAnalysis",
    "StackUsage",
    "__version__",
    "analyze",
    "load_image",
    "parse_hex",
]
