"""
Extract layer for the extensions data pipeline.

Readers for the JSON input files and the packaged ``.crx`` archives.
"""
