"""Arcade Duels: wagered two-player mini-games"""

__version__ = "0.1.0"
