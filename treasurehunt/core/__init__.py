"""
Core types: errors, round model, audit envelope, keys, commitments.
"""
