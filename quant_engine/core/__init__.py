"""Core mathematics and configuration for the quant analytics engine.

This package contains pure, domain-agnostic building blocks:

- ``odds_math``    : odds conversion, implied probability, margin removal
- ``kelly``        : Kelly criterion fractions (probability as a fraction)
- ``stats``        : mean / sample SD / percentile helpers shared by services
- ``engine_config``: tunable constants (ELO K, draw factor, thresholds, ...)
- ``errors``       : the ``InvalidInputs`` error raised at service boundaries

Nothing in this package imports from ``quant_engine.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
