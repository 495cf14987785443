"""
Caller-side import and export workflows.

Wraps the codecs with the policies of the application that uses them:
format detection on upload, fail-closed commits into the record store, and
export file naming.
"""
