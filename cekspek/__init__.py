"""CekSpek.id smartphone specification catalog."""

__version__ = "0.1.0"
