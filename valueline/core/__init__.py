"""Core mathematics and configuration for the value-line finder.

This package contains pure, provider-agnostic building blocks:

- ``odds_math``    : probability → fair decimal → American / fractional odds
- ``distribution`` : erf / Normal CDF, population SD, recency weighting
- ``fields``       : canonical statistic fields and the source alias table
- ``line_config``  : acceptance band, decay and confidence constants

Nothing in this package imports from ``valueline.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
