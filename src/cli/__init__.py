"""
Command line interface for the access stack installer.
"""
