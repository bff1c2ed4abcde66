"""
AndLibUtils -- Android Native Library Utilities
================================================

Post-compilation tooling for Android ELF shared objects.

Capabilities:
    - Renaming JNI native methods registered through ``RegisterNatives``
      by redirecting their name pointer to another string in ``.rodata``
    - Detecting the ``PRE `` prelink trailer and mapping prelinked
      libraries by load address
    - Streaming, section-aware ELF32 reading and in-place patching

References:
    - TIS Committee. (1995). ELF Specification.
    - Oracle. Java Native Interface Specification, ``RegisterNatives``.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
