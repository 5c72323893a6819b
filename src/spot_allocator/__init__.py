"""
Spot allocation optimizer: find the cheapest reliable region, zone, and instance type
for a spot instance and compute a safe bid price.
"""

__version__ = "0.1.0"
