"""Example workloads timed by the benchmark suites.

The runner knows nothing about these modules; :mod:`latbench.bench.suites`
binds their callables as default arguments of each suite.
"""
