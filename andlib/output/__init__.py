"""
AndLib Output
==============

Console rendering and JSON reports for AndLibUtils results.
"""
