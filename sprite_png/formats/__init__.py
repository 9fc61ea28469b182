"""File format modules, one per format, found by sprite_png.registry.discover()."""
