"""Infrastructure layer — operational concerns for the clue-marker engine.

Modules:
    metrics     Prometheus counters for batch auto-marking runs.
"""
