"""
TechDraw I/O Module

Plain-record conversion of entities and store states.
"""

from .records import entity_to_dict, entity_from_dict, state_to_dict, state_from_dict

__all__ = ['entity_to_dict', 'entity_from_dict', 'state_to_dict', 'state_from_dict']
