"""Synchronise a directory of Mindustry schematics with a shared spreadsheet."""

__version__ = "0.3.0"
