"""Savings contributions for goal-based buckets."""
