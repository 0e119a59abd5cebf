"""Buckets, income, expenses and the allocation engine."""
