#!/usr/bin/env python
"""
FarmView - farm and field-block management with a polygon map editor.

Main entry point for the application.

Usage
-----
    uv run python main.py

or:
    python main.py
"""

import sys


def main() -> int:
    """
    Main entry point for the FarmView application.

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error).
    """
    from loguru import logger
    from PySide6.QtWidgets import QApplication
    import pyqtgraph as pg

    from farmview import __version__
    from farmview.gui.config import data_dir

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level="DEBUG"
    )
    logger.add(
        data_dir() / "farmview.log",
        level="INFO",
        rotation="5 MB",
        retention=5,
        encoding="utf-8",
    )

    logger.info(f"Starting FarmView {__version__}...")

    # Configure PyQtGraph
    pg.setConfigOptions(
        imageAxisOrder='row-major',
        antialias=True,
    )

    # Create application
    app = QApplication(sys.argv)
    app.setApplicationName("FarmView")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("YOTE")

    # Set application style
    app.setStyle("Fusion")

    # Import and create main window
    from farmview.gui.main_window import MainWindow

    window = MainWindow()
    window.show()
    window.load_data()

    logger.info("Application started successfully")

    # Run event loop
    exit_code = app.exec()

    logger.info(f"Application exited with code: {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
