"""sprite-png — PNG codec for sprite documents.

Transcodes PNG files to and from three canonical in-memory pixel layouts
(true colour, grayscale, palette-indexed) with a single transparent
palette index.

Logging is silent by default. Enable it with:

    import logging
    logging.basicConfig(level=logging.DEBUG)
"""

import logging

__version__ = '0.1.0'

logger = logging.getLogger('sprite_png')
logger.addHandler(logging.NullHandler())
