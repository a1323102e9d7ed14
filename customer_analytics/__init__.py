"""
Customer Analytics Service

Rebuilds a denormalized order/customer table from the document store and
serves faceted customer reports over it.
"""

__version__ = "1.0.0"
