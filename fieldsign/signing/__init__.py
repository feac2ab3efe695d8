"""Signing engine

Viewport math, gesture classification, signature capture and high-resolution
compositing, independent of any rendering surface.
"""
