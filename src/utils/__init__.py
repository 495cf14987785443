"""
Generic utility functions shared across modules.

Includes the clock abstraction and UTC timestamp helpers, text formatting
helpers used by the encoders, and logging setup.
"""
