"""
tilecode CLI Commands

Commands:
    count  - Self-match count for every segment read from input
    query  - Features overlapping one or more query boxes
    encode - Code of a bbox
    decode - Zoom and corner held by a code
"""

from cli.commands import count, encode, query

__all__ = ["count", "encode", "query"]
