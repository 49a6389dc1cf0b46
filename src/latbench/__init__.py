"""latbench: latency micro-benchmark harness."""

__version__ = "0.1.0"
