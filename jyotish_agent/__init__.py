"""
Jyotish Agent - Vedic Astrology Question Answering
==================================================

An agent that answers questions about a person's birth chart by letting
a language model call astrology calculation tools and search indexed
classical texts in a bounded loop.

This package provides:
- Agent facade: validate, recover the chart, run the loop, report
- Tool registry: typed calculation and book search tools per request
- Calculation client: the remote chart, dasha, transit, varga and
  varshaphala endpoints
- Retrieval store: incremental book indexing and grounded book queries
"""

__version__ = "1.0.0"
