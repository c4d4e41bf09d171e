from .tray_app import TrayApp

__all__ = ["TrayApp"]
