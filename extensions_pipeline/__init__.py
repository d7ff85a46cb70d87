"""
Data pipeline package for browser-extension research data.

This package loads extension metadata, the text files shipped inside
the extension archives, and the network requests recorded while the
extensions ran into PostgreSQL for later analysis.
"""
