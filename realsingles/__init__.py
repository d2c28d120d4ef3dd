"""
RealSingles backend.
"""
