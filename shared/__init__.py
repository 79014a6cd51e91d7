"""
Shared Kernel

Base classes and utilities shared by every app: the domain kernel,
the unit of work and message bus, and infrastructure helpers.
"""
