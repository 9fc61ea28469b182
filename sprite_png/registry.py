"""File format lookup.

Every module in sprite_png/formats/ that defines a module-level
`file_format` (a FileFormat) is registered on first use, once by name and
once per file extension it claims. Two formats claiming the same name or
extension is a programming error.
"""

import importlib
import os
import pkgutil

import sprite_png.formats
from sprite_png.core.types import FileFormat

_by_name: dict[str, FileFormat] = {}
_by_extension: dict[str, FileFormat] = {}


def _register(fmt: FileFormat) -> None:
    if fmt.name in _by_name:
        raise ValueError(f'Format {fmt.name} registered twice')
    for ext in fmt.extension_list:
        if ext in _by_extension:
            raise ValueError(f'Extension .{ext} claimed by both {_by_extension[ext].name} and {fmt.name}')
    _by_name[fmt.name] = fmt
    for ext in fmt.extension_list:
        _by_extension[ext] = fmt


def discover() -> dict[str, FileFormat]:
    """Import every format module once and return the formats keyed by name."""
    if _by_name:
        return _by_name
    for module_info in pkgutil.iter_modules(sprite_png.formats.__path__):
        if module_info.name.startswith('_'):
            continue
        module = importlib.import_module(f'sprite_png.formats.{module_info.name}')
        fmt = getattr(module, 'file_format', None)
        if isinstance(fmt, FileFormat):
            _register(fmt)
    return _by_name


def get(name: str) -> FileFormat:
    """Get a format by name."""
    formats = discover()
    if name not in formats:
        raise KeyError(f'Unknown format: {name}. Available: {", ".join(sorted(formats))}')
    return formats[name]


def all_formats() -> dict[str, FileFormat]:
    return discover()


def find_format(filename: str) -> FileFormat:
    """Get the format registered for the extension of `filename` (case-insensitive)."""
    discover()
    ext = os.path.splitext(filename)[1].lstrip('.').lower()
    if ext not in _by_extension:
        raise KeyError(f'No format handles {filename}. Known extensions: {", ".join(sorted(_by_extension))}')
    return _by_extension[ext]
