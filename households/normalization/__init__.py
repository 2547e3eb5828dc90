"""Normalization package.

Turns the free-form address fragments of a voter record into the exact-match
household key used for clustering.  Matching is deliberately literal: no
case-folding, punctuation clean-up or fuzzy comparison.
"""
