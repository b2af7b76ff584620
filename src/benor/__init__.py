"""
Ben-Or randomized binary consensus

Simulates a network of N nodes reaching agreement on a bit while up to F
of them crash or never participate.
"""

__version__ = "1.0.0"
