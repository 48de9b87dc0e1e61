"""
Forecast Kernel

Shared foundation for the project cost forecasting engine:
- Immutable domain records (categories, labor, purchase orders, headcount)
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- Read-only SQL access to forecast inputs
"""

__version__ = "0.1.0"
