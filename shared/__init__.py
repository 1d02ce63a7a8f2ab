"""
Module descriptor helpers shared by the core runtime and the command line.
"""
