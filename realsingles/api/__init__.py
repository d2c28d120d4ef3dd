"""
RealSingles HTTP API.
"""
