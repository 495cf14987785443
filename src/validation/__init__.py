"""
Field validation shared by both codecs.

Required-field checks that reject a row, optional-field checks that silently
drop a value, and the row-level error taxonomy.
"""
