"""
AndLib Parsers
===============

Low-level file access: the buffered random-access stream, the
section-aware ELF reader and prelink trailer detection.
"""
