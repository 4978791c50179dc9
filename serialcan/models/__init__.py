"""
Data models for serialcan.

Models:
- CanFrame: a Standard or Extended CAN data frame
- FrameKind: frame format enum
"""

from serialcan.models.can_frame import CanFrame, FrameKind

__all__ = ['CanFrame', 'FrameKind']
