from .snap import Snap, SnapType

__all__ = ["Snap", "SnapType"]
