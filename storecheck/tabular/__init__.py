"""
CSV input and report adapters.
"""
