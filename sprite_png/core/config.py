"""Codec configuration, read from the environment and .env files.

Load order (first wins):
  1. Existing OS environment variables, never overwritten.
  2. .env file at the explicit env_file path (if provided).
  3. .env file walking up from cwd, stopping at .git (file or dir).

Recognised variables:
  SPRITE_PNG_COMPRESSION       zlib level 0..9 used when saving (default 6)
  SPRITE_PNG_FILTER            none, sub, up, average, paeth or adaptive
  SPRITE_PNG_IDAT_CHUNK_SIZE   max bytes per IDAT chunk when saving
  SPRITE_PNG_VERIFY_CRC        1/0, true/false; check chunk CRCs on load
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from sprite_png.core.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = 'SPRITE_PNG_'
FILTER_STRATEGIES = ('none', 'sub', 'up', 'average', 'paeth', 'adaptive')

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off'}


@dataclass(frozen=True)
class CodecConfig:
    compression_level: int = 6
    filter_strategy: str = 'adaptive'
    idat_chunk_size: int = 8192
    verify_crc: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.compression_level <= 9:
            raise ConfigError(f'compression_level must be 0..9, got {self.compression_level}')
        if self.filter_strategy not in FILTER_STRATEGIES:
            available = ', '.join(FILTER_STRATEGIES)
            raise ConfigError(f'Unknown filter strategy: {self.filter_strategy}. Available: {available}')
        if self.idat_chunk_size <= 0:
            raise ConfigError(f'idat_chunk_size must be positive, got {self.idat_chunk_size}')


def _env_file_path(env_file: str | None) -> Path | None:
    """The explicit env_file, else the nearest .env from cwd up to the repository root."""
    if env_file:
        path = Path(env_file)
        if not path.is_file():
            raise ConfigError(f'env file not found: {env_file}')
        return path
    cwd = Path.cwd().resolve()
    for directory in (cwd, *cwd.parents):
        if (directory / '.env').is_file():
            return directory / '.env'
        if (directory / '.git').exists():
            return None
    return None


def _env_values(env_file: str | None) -> dict[str, str]:
    """SPRITE_PNG_* settings from the .env file, overridden by the OS environment."""
    values: dict[str, str] = {}
    path = _env_file_path(env_file)
    if path is not None:
        logger.debug('reading codec settings from %s', path)
        for line in path.read_text(encoding='utf-8').splitlines():
            key, sep, raw_value = line.partition('=')
            key = key.strip()
            if sep and key.startswith(ENV_PREFIX):
                values[key] = raw_value.strip().strip('"\'')
    values.update((k, v) for k, v in os.environ.items() if k.startswith(ENV_PREFIX))
    return values


def _as_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f'{name} must be an integer, got {raw!r}') from exc


def _as_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f'{name} must be a boolean, got {raw!r}')


def load_config(env_file: str | None = None) -> CodecConfig:
    """Build a CodecConfig from the environment. Unset keys keep their defaults."""
    env = _env_values(env_file)
    kwargs: dict = {}
    if f'{ENV_PREFIX}COMPRESSION' in env:
        kwargs['compression_level'] = _as_int(f'{ENV_PREFIX}COMPRESSION', env[f'{ENV_PREFIX}COMPRESSION'])
    if f'{ENV_PREFIX}FILTER' in env:
        kwargs['filter_strategy'] = env[f'{ENV_PREFIX}FILTER'].strip().lower()
    if f'{ENV_PREFIX}IDAT_CHUNK_SIZE' in env:
        kwargs['idat_chunk_size'] = _as_int(f'{ENV_PREFIX}IDAT_CHUNK_SIZE', env[f'{ENV_PREFIX}IDAT_CHUNK_SIZE'])
    if f'{ENV_PREFIX}VERIFY_CRC' in env:
        kwargs['verify_crc'] = _as_bool(f'{ENV_PREFIX}VERIFY_CRC', env[f'{ENV_PREFIX}VERIFY_CRC'])
    return CodecConfig(**kwargs)
