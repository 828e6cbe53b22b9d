"""
Statistical analysis modules: descriptive tables and correlation annotation.
"""
