"""Order read backend: one projection shape, six fetch strategies."""

__version__ = "0.1.0"
