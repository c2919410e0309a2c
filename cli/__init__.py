"""
tilecode CLI Package

Command-line interface for the quadtree code index.

Usage:
    tilecode count --input segments.txt
    tilecode query --input segments.txt --bbox 40.70,-74.02,40.72,-74.00
    tilecode encode 40.70 10.0 40.72 10.1
    tilecode decode 1c7f3b2a00000000
"""

from cli.main import app

__all__ = ["app"]
