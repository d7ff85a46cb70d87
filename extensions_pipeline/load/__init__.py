"""
Load layer for the extensions data pipeline.

This subpackage contains code that connects to PostgreSQL and
loads the parsed inputs into the ``extensions`` schema.
"""
