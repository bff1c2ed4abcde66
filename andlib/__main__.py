"""
AndLib Module Entry Point
==========================

Allows running the AndLibUtils CLI via: python -m andlib
"""

from andlib.cli import main

if __name__ == "__main__":
    main()
