"""
TechDraw Editing Module

Interactive modification tools and hit testing.
"""

from .hit_test import find_entity_at_point, distance_to_entity
from .tools import ModifyTool, TrimTool, ExtendTool, ToolType, ToolState

__all__ = [
    'find_entity_at_point', 'distance_to_entity',
    'ModifyTool', 'TrimTool', 'ExtendTool', 'ToolType', 'ToolState',
]
