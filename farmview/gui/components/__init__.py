# FarmView GUI Components
"""
Reusable GUI components for FarmView.

Components:
- MapCanvas: Web Mercator map with XYZ tiles and block polygons
- ColorLayerPanel: Map layers and block colour filter
- StatusBar: Coordinates, zoom and measure readouts
- BlockFormPanel: Block metadata form
- BarChart / StatCard: Dashboard widgets
"""
