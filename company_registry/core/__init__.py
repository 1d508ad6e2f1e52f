"""Core request pipeline primitives.

Modules in this package cover configuration, validation, the per-request
context, the geo-IP gate, shutdown coordination and the error taxonomy.
"""
