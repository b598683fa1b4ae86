"""CHIP-8 virtual machine with a pygame front end and headless debug runner."""

__version__ = "0.1.0"
