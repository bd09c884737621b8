"""
3D Printing Analytics - job, feedback and project tracking API with an offline-capable client
"""

__version__ = "3.0.0"
