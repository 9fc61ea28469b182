"""sprite_png.core — Foundation layer.

Contains the pixel types, chunk and filter layers, row converters, the
transparency resolver, and the decoder/encoder pair.
This module has NO dependencies on sprite_png.formats or sprite_png.registry.
Only stdlib, numpy, and PIL are allowed here.
"""
