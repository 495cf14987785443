"""
In-memory observation model shared by every codec.

Defines the observation, ice-category and voyage records together with the
ImportResult container that decoders hand back to callers.
"""
