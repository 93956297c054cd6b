"""
Competitor Monitor

Crawls monitored competitor websites on a schedule, extracts prices,
promotions and menu items with an LLM, detects changes between
observations and raises deduplicated, cooldown-gated alerts.
"""

__version__ = "0.1.0"
__author__ = "Competitor Monitor Team"
