"""
AndLib Core
============

Renaming engine, result models, error hierarchy and the temporary
workspace used to patch libraries safely.
"""
