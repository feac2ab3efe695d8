"""Conversion package

Marks `fieldsign.conversion` as a proper Python package so imports like
`from fieldsign.conversion.pipeline import ConversionPipeline` work reliably
in all environments (including Docker images).
"""
