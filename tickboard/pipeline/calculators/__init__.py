"""Incremental metric calculators."""

from .change import ChangeCalculator
from .volume import VolumeCalculator, volume_rank

__all__ = ["ChangeCalculator", "VolumeCalculator", "volume_rank"]
