"""
Configuration constants for photocull.

This module contains all configurable settings including:
- Supported image extensions
- Near-duplicate threshold and hashing defaults
- Default locations for the history log, hash cache and quarantine
"""

import os

# All supported image extensions (comprehensive list)
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # RAW formats
    '.raw', '.cr2', '.cr3', '.nef', '.arw', '.dng', '.orf', '.rw2',
    '.pef', '.srw', '.raf',
    # Other formats
    '.ico', '.psd',
    '.heic', '.heif', '.avif', '.jxl',
    '.pbm', '.pgm', '.ppm', '.pnm',
    '.tga', '.jp2', '.j2k',
}

# Extensions that can only be decoded when pillow-heif is installed
HEIF_EXTENSIONS = {'.heic', '.heif'}

# Normalized perceptual distance at or below which two images are "near"
# duplicates (0.0 = identical fingerprint, 1.0 = every bit differs)
DEFAULT_NEAR_THRESHOLD = 0.10

# Default number of parallel workers for hashing
DEFAULT_WORKERS = min(os.cpu_count() or 4, 32)

# pHash size; 16 gives a 256-bit fingerprint
DEFAULT_HASH_SIZE = 16

# Read size used when computing content hashes
HASH_CHUNK_SIZE = 65536

# Upper bound on concurrent cull groups
DEFAULT_CULL_WORKERS = 4

# Decompression bomb limit for PIL (500 megapixels)
MAX_IMAGE_PIXELS = 500_000_000

# Default file locations
APP_DIR = os.path.join(os.path.expanduser('~'), '.photocull')
HISTORY_FILE = os.path.join(APP_DIR, 'history.jsonl')
CACHE_DB_FILE = os.path.join(APP_DIR, 'hash_cache.db')
DEFAULT_QUARANTINE_DIR = os.path.join(APP_DIR, 'quarantine')

# Directory names never descended into while scanning (matched exactly)
DEFAULT_EXCLUDED_DIRS = ('duplicates',)
