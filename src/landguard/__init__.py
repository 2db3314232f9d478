"""landguard: scam risk scoring and property correlation for real-estate listings.

This package contains the heuristic listing analyzer, the score aggregator,
the property identity and correlation store, and the community alert and
watchlist services that sit on top of a property record.
"""
