"""
dbbench: concurrent insert and read benchmarks across data stores.
"""

__version__ = "0.1.0"
