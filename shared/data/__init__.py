"""
Shared data infrastructure.

Contains:
- stata_file.py: Reader for Stata (.dta) survey extracts
"""

from shared.data.stata_file import read_stata_table

__all__ = [
    "read_stata_table",
]
