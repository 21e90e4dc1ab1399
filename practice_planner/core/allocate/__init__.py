"""Weighted time allocation over the activity tree.

Allocation is pure: it reads the forest it is given and returns fresh
PlanEntry objects, so the same tree and budget always produce the same plan.
"""
