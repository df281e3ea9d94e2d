"""
Calculation Service
===================

Client for the remote astrology calculation service. The agent treats the
service as an opaque set of endpoints and never computes charts itself.
"""

from jyotish_agent.calculation.client import CalculationClient
from jyotish_agent.errors import CalculationError

__all__ = ["CalculationClient", "CalculationError"]
