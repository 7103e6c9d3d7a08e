"""Virtual pagination of large remote row sets behind a bounded page cache."""

__version__ = '0.1.0'
