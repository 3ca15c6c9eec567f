"""Random product-review sentiment classification."""

__version__ = "0.1.0"
