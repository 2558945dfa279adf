"""
PropJournal - Personal Prop-Firm Trading Journal

A self-hosted Python journal for evaluation and funded accounts:
records trades, tracks account rules, mirrors trades to copy
followers and walks the user through account milestones.
"""

__version__ = "0.1.0"
