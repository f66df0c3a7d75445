"""Domain layer for visitrack: models, events and errors.

Nothing in this package performs I/O. Services in the application layer
compose these types with ports.
"""
