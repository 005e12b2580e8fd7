# FarmView GUI
"""
Fluent-style desktop interface: main window, pages and shared services.
"""
