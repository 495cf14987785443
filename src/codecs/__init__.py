"""
Import/export codecs for sea-ice observations.

Decoders and encoders for the generic tabular (CSV) format and the
line-oriented ASPeCt text format, the ice-category assembler they share, and
the format detector that chooses between them.
"""
