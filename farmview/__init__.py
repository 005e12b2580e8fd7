# FarmView - Source Package
"""
FarmView: farm and field-block management dashboard.

This package provides a PySide6-based GUI for:
- Farm registration with postal-code lookup
- Block delineation on an interactive polygon map editor
- GeoJSON / Shapefile import and export of blocks
- Chemical application logging
- Team and company settings administration
"""

__version__ = "0.1.0"
