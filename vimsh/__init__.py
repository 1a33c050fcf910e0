"""Interactive shell for vSphere inventories."""

__version__ = '0.1.0'
