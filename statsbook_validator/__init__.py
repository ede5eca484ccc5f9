"""
Statsbook Validator — Parse and check roller derby statsbooks.

Architecture: Version detection → Template → IGRF → Score → Penalty → Lineup → Aggregator
Philosophy:  Read the grid exactly as written. Report every inconsistency, correct none.
"""

__version__ = "1.0.0"
