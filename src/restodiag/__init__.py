"""Monthly health diagnosis for restaurant operating surveys."""

__version__ = "0.3.0"
