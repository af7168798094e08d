"""
Heating Controller Dashboard Engine

Configuration normalization, sensor-role resolution and equitherm curve
evaluation for the heating controller dashboard.
"""

__version__ = "1.0.0"
