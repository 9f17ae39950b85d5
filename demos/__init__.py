"""Runnable demos for the metric-field toolkit.

Each module exposes a main(argv) function and a __main__ guard so it can be
executed via:

    python -m demos.hessian_metric_demo --nx 30 --ny 30 --target 4000
"""
