"""Household resolution and dashboard metrics for voter rolls.

Clusters voter records into families by address, assigns stable ``FAM####``
identifiers, and computes the survey roll-up numbers shown on dashboards.
"""
