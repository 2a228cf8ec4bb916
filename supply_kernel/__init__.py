"""
Supply Kernel - purchase-order fulfillment

Tracks purchase orders from creation through partial and full receipt into
warehouse stock:
- Strict receiving (no over-receipt, monotonic received quantities)
- Volume-bounded warehouse locations
- Order status derived from line items
- Atomic, retried, per-order serialized commands
"""

__version__ = "0.1.0"
