"""HeartField: hand-gesture driven 3D particle heart / starfield."""

__version__ = "1.0.0"
