"""
Multi-layer networks built from plain chains of layers.
"""
from ._mlnn import MLNN

__all__ = ['MLNN']
