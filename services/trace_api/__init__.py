"""
Trace-API - manufacturing traceability over a property graph.

Suppliers deliver material batches, batches are used in serialized units and
every unit carries an inspection. The service answers supplier quality rates,
serial traces (with recall siblings) and random serial samples, and can seed
or clear a synthetic dataset.
"""

__version__ = "0.1.0"
