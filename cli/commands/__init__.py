"""
Allocator CLI Commands Package

Command modules for the allocator CLI.
"""

__all__ = ['collection', 'config']
