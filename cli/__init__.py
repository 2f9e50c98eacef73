"""
Allocator CLI

Command line tooling for inspecting and simulating random-allocation
collections.
"""

__version__ = "0.1.0"
