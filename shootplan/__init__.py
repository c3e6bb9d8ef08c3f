"""
Source code for the Shootplan production scheduling assistant.
This package contains all the core modules and utilities.
"""

# Module exports
__all__ = [
    'ai_cache',
    'film_day',
    'scene_order',
    'scheduling'
]
