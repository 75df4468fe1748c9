"""
Autonate - Focus on part of a screenshot and annotate it.

This package contains the application modules:
- core: Application core, capture, export and the fullscreen overlay
- editor: Focus region, annotations, undo store, rendering and input routing
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
