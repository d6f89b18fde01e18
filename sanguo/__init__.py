"""
Three Kingdoms campaign simulation.
Turn-based engine, scenario data, headless simulator and a small game-session API.
"""

__version__ = "0.3.0"
