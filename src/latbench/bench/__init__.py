"""Benchmarking subsystem for latbench.

Provides the runner that times an arbitrary operation over repeated
iterations, the aggregation of per-iteration durations into summary
statistics, and the ranking of several results against each other.
"""
