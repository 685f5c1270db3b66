"""Visitor filter models package.

Defines the data contracts shared by the evaluator and its callers:

  - verdict.py — VisitorSignals, Verdict (analytics envelope), BlockOutcome
  - block.py   — blocked-visitor HTML content and Starlette response builders
"""
