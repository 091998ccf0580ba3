"""
Budget Pal - Source Package

A small daemon that sends one spending status message per day.

PIPELINE:
1. Scheduler fires once per day (or on manual trigger)
2. Transactions are fetched from the bank aggregator
3. Calculator derives the spending report
4. Notifier formats and delivers it, falling back across
   address variants and channels
"""

__version__ = "1.0.0"
__author__ = "Budget Pal Team"
