"""Core mathematics and configuration for the parlay edge engine.

This package contains pure, storage-agnostic building blocks:

- ``errors``        — exception taxonomy shared by core and services
- ``odds_math``     — implied probability, odds conversion, vig removal
- ``kelly``         — Kelly criterion sizing with the hard stake cap
- ``markets``       — closed market-selection variants and ``MarketLeg``
- ``engine_config`` — ``GenerationConfig`` / ``IntelligenceConfig`` and the
  single defaults → environment → overrides merge step

Nothing in this package imports from ``parlay_edge.services`` or
``parlay_edge.models``.  All modules are side-effect-free and unit-testable
in isolation.
"""
