"""DartVision - dart scoring from a single fixed camera."""
__version__ = "1.0.0"
