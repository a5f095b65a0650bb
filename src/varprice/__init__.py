"""varprice: product variant and order pricing engine."""

__version__ = "0.4.0"
