"""
TechDraw - 2D geometry kernel for technical drawings.
"""

__version__ = "0.1.0"
