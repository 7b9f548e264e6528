"""
Engines are things that run around the request polling: logging, etc.
"""
