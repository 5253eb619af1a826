"""
Volume Cross - volume moving-average crossover signals, limit order recommendations and execution.
"""

__version__ = "1.0.0"
