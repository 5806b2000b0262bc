"""
parser package — классификация и нормализация исходного SQL
"""

from .normalizer import SqlNormalizer
from .unsupported import find_unsupported, split_elements
from .classifier import (
    Classification,
    Detector,
    DetectorLibrary,
    SqlClassifier,
    default_classifier,
)

__all__ = [
    "SqlNormalizer",
    "find_unsupported",
    "split_elements",
    "Classification",
    "Detector",
    "DetectorLibrary",
    "SqlClassifier",
    "default_classifier",
]
