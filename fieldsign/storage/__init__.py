"""Storage package

Upload locations, deterministic artifact names, multipart staging and
post-save cleanup.
"""
