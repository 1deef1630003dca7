"""
Service layer for crispr_rra.

This subpackage contains code that interacts with the outside world:
files and file formats.
"""
