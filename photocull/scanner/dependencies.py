"""
Third-party imports for the scanner package.

Pillow and imagehash are required for hashing. pillow-heif only adds a
decoder: without it .heic/.heif files are still discovered but reported
as unsupported. tqdm is only needed for CLI progress bars.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Optional

from ..config import MAX_IMAGE_PIXELS

_logger = logging.getLogger('photocull.scanner')

try:
    from PIL import Image
    import imagehash
except ImportError as e:
    raise ImportError(
        f"photocull cannot hash images without Pillow and imagehash ({e}).\n"
        "Install with: pip install Pillow imagehash"
    ) from e

# Register before any file is opened so Image.open() recognises HEIC
try:
    from pillow_heif import register_heif_opener
except ImportError:
    HAS_HEIF_SUPPORT = False
    _logger.debug("pillow-heif not installed; .heic/.heif photos will be reported as unsupported")
else:
    register_heif_opener()
    HAS_HEIF_SUPPORT = True

# Photo libraries hold scans and panoramas far above PIL's ~89MP default
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)

try:
    from tqdm import tqdm as _tqdm_class
except ImportError:
    _tqdm_class: Optional[Any] = None
HAS_TQDM = _tqdm_class is not None


def make_progress_bar(desc: str, unit: str = "img") -> Optional[Any]:
    """
    Create an open-ended tqdm bar, or None when tqdm is not installed.

    The total starts at 0 because scans discover files while hashing.
    """
    if not HAS_TQDM:
        return None
    return _tqdm_class(total=0, desc=desc, unit=unit, ncols=80)


__all__ = [
    'Image',
    'imagehash',
    'HAS_HEIF_SUPPORT',
    'HAS_TQDM',
    'make_progress_bar',
    '_logger',
]
