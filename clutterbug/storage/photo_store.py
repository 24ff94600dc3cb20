"""
File-based photo storage: compressed originals plus three thumbnail sizes.

Layout under the storage root:
    photos/<identifier>.jpg
    thumbnails/<identifier>_<small|medium|large>.jpg

Identifiers are opaque strings stored on Container/Item rows. Nothing links
them to files except this naming convention, so orphan cleanup and integrity
checks have to be run explicitly.
"""
import io
import logging
import os
import re
import shutil
import tempfile
import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Set, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from clutterbug.core.config import settings

logger = logging.getLogger(__name__)

PHOTOS_DIR_NAME = "photos"
THUMBNAILS_DIR_NAME = "thumbnails"
PHOTO_EXTENSION = ".jpg"

ORIGINAL_MAX_SIZE = (1024, 1024)
ORIGINAL_QUALITY = 85

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


class ThumbnailSize(str, Enum):
    """Thumbnail variants generated for every saved photo"""
    SMALL = "small"    # 40x40 for list icons
    MEDIUM = "medium"  # 80x80 for cards
    LARGE = "large"    # 200x200 for detail views

    @property
    def dimensions(self) -> Tuple[int, int]:
        return {
            ThumbnailSize.SMALL: (40, 40),
            ThumbnailSize.MEDIUM: (80, 80),
            ThumbnailSize.LARGE: (200, 200),
        }[self]

    @property
    def quality(self) -> int:
        return {
            ThumbnailSize.SMALL: 70,
            ThumbnailSize.MEDIUM: 80,
            ThumbnailSize.LARGE: 90,
        }[self]


def format_bytes(num_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'"""
    size = float(num_bytes)
    for unit in ("bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            if unit == "bytes":
                return f"{int(size)} bytes"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@dataclass
class PhotoStorageInfo:
    """Disk usage of originals and thumbnails"""
    original_photos_size: int
    thumbnails_size: int
    photo_count: int
    thumbnail_count: int

    @property
    def total_size(self) -> int:
        return self.original_photos_size + self.thumbnails_size

    @property
    def compression_ratio(self) -> float:
        """
        Thumbnail bytes per original byte (0 when there are no originals).

        This is a size ratio, not a space-savings figure: 0.25 means the
        thumbnails take a quarter of the space of the originals, and it is
        not computed as 1 - total/original.
        """
        if self.original_photos_size <= 0:
            return 0.0
        return self.thumbnails_size / self.original_photos_size

    @property
    def formatted_total_size(self) -> str:
        return format_bytes(self.total_size)

    @property
    def formatted_original_size(self) -> str:
        return format_bytes(self.original_photos_size)

    @property
    def formatted_thumbnail_size(self) -> str:
        return format_bytes(self.thumbnails_size)


class ReadWriteLock:
    """Many concurrent readers or a single writer"""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ImageCache:
    """
    Least-recently-used map of decoded images with a fixed capacity.

    Not locked itself; PhotoStore guards it with its ReadWriteLock.
    """

    def __init__(self, max_entries: int):
        self.max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, Image.Image]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Image.Image]:
        image = self._entries.get(key)
        if image is not None:
            # Single C-level call, safe alongside other readers
            self._entries.move_to_end(key)
        return image

    def put(self, key: str, image: Image.Image):
        self._entries[key] = image
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted} from image cache")

    def pop(self, key: str):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()


class PhotoStore:
    """
    Photo artifact storage with a bounded in-memory read cache.

    All calls are synchronous and do blocking disk I/O; callers that need
    responsiveness run them off their primary thread. Images handed out by
    load and load_thumbnail are copies, so callers may modify them.
    """

    def __init__(
        self,
        storage_dir: Optional[Path] = None,
        cache_size: Optional[int] = None,
        thumbnail_cache_size: Optional[int] = None
    ):
        """
        Initialize photo storage.

        :param storage_dir: Root directory for storage. Defaults to PHOTO_STORAGE_DIR
        :param cache_size: Decoded originals kept in memory. Defaults to PHOTO_CACHE_SIZE
        :param thumbnail_cache_size: Decoded thumbnails kept in memory. Defaults to THUMBNAIL_CACHE_SIZE
        """
        self.storage_dir = Path(storage_dir or settings.PHOTO_STORAGE_DIR)
        self.photos_dir = self.storage_dir / PHOTOS_DIR_NAME
        self.thumbnails_dir = self.storage_dir / THUMBNAILS_DIR_NAME

        self._image_cache = ImageCache(cache_size or settings.PHOTO_CACHE_SIZE)
        self._thumbnail_cache = ImageCache(thumbnail_cache_size or settings.THUMBNAIL_CACHE_SIZE)
        self._cache_lock = ReadWriteLock()
        # Bumped on every invalidation; a disk read started before a bump is not cached
        self._cache_version = 0

        self._ensure_directories()

    def _ensure_directories(self):
        for directory in (self.photos_dir, self.thumbnails_dir):
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created photo directory at: {directory}")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def is_valid_identifier(identifier: str) -> bool:
        return bool(identifier) and _IDENTIFIER_RE.match(identifier) is not None

    def _photo_path(self, identifier: str) -> Path:
        return self.photos_dir / f"{identifier}{PHOTO_EXTENSION}"

    def _thumbnail_path(self, identifier: str, size: ThumbnailSize) -> Path:
        return self.thumbnails_dir / f"{identifier}_{size.value}{PHOTO_EXTENSION}"

    @staticmethod
    def _thumbnail_cache_key(identifier: str, size: ThumbnailSize) -> str:
        return f"{identifier}_{size.value}"

    @staticmethod
    def identifier_from_filename(filename: str, thumbnail: bool = False) -> str:
        """
        Recover the photo identifier from a stored filename.

        For thumbnails only a known size suffix is stripped, so identifiers
        that contain underscores survive intact.
        """
        stem = filename[:-len(PHOTO_EXTENSION)] if filename.endswith(PHOTO_EXTENSION) else filename
        if not thumbnail:
            return stem
        for size in ThumbnailSize:
            suffix = f"_{size.value}"
            if stem.endswith(suffix):
                return stem[:-len(suffix)]
        return stem

    # ------------------------------------------------------------------
    # Image processing
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(data: bytes) -> Optional[Image.Image]:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            return image
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"Could not decode image data: {e}")
            return None

    @staticmethod
    def _encode(image: Image.Image, max_size: Tuple[int, int], quality: int) -> bytes:
        """Fit image inside max_size keeping aspect ratio (never upscaling) and encode as JPEG"""
        resized = image.copy()
        if resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        resized.thumbnail(max_size, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        resized.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()

    @staticmethod
    def _atomic_write(path: Path, data: bytes):
        """Write to a temp file in the same directory, then rename over the target"""
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _read_image(self, path: Path) -> Optional[Image.Image]:
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading photo file {path.name}: {e}")
            return None
        return self._decode(data)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def save(self, identifier: str, data: bytes) -> bool:
        """
        Save a photo: compressed original plus all thumbnails.

        :param identifier: Photo identifier
        :param data: Raw image bytes in any format Pillow can read
        :return: True if the original was written
        """
        if not self.is_valid_identifier(identifier):
            logger.error(f"Invalid photo identifier: {identifier!r}")
            return False

        image = self._decode(data)
        if image is None:
            logger.error(f"Failed to decode image for {identifier}")
            return False
        image = ImageOps.exif_transpose(image)

        try:
            compressed = self._encode(image, ORIGINAL_MAX_SIZE, ORIGINAL_QUALITY)
            self._atomic_write(self._photo_path(identifier), compressed)
        except OSError as e:
            logger.error(f"Error saving photo {identifier}: {e}", exc_info=True)
            return False

        logger.info(f"Saved compressed photo: {identifier} ({len(compressed)} bytes)")
        self._generate_thumbnails(compressed, identifier)
        self._clear_cache_for_identifier(identifier)
        return True

    def _generate_thumbnails(self, original_data: bytes, identifier: str):
        original = self._decode(original_data)
        if original is None:
            return

        for size in ThumbnailSize:
            try:
                thumbnail_data = self._encode(original, size.dimensions, size.quality)
                self._atomic_write(self._thumbnail_path(identifier, size), thumbnail_data)
                logger.debug(f"Generated {size.value} thumbnail for {identifier}")
            except OSError as e:
                logger.error(f"Failed to save {size.value} thumbnail for {identifier}: {e}")

    def load(self, identifier: str) -> Optional[Image.Image]:
        """
        Load the original photo.

        :param identifier: Photo identifier
        :return: Image, or None if no such photo exists
        """
        with self._cache_lock.read():
            cached = self._image_cache.get(identifier)
            version = self._cache_version
        if cached is not None:
            return cached.copy()

        if not self.is_valid_identifier(identifier):
            return None

        image = self._read_image(self._photo_path(identifier))
        if image is None:
            return None
        self._cache_if_current(self._image_cache, identifier, image, version)
        return image.copy()

    def load_thumbnail(self, identifier: str, size: ThumbnailSize = ThumbnailSize.SMALL) -> Optional[Image.Image]:
        """
        Load a thumbnail, regenerating it from the original if its file is missing.

        :param identifier: Photo identifier
        :param size: Thumbnail variant
        :return: Image, or None if neither thumbnail nor original exists
        """
        cache_key = self._thumbnail_cache_key(identifier, size)
        with self._cache_lock.read():
            cached = self._thumbnail_cache.get(cache_key)
            version = self._cache_version
        if cached is not None:
            return cached.copy()

        if not self.is_valid_identifier(identifier):
            return None

        thumbnail_path = self._thumbnail_path(identifier, size)
        if thumbnail_path.exists():
            image = self._read_image(thumbnail_path)
        else:
            image = self._regenerate_thumbnail(identifier, size)

        if image is None:
            return None
        self._cache_if_current(self._thumbnail_cache, cache_key, image, version)
        return image.copy()

    def _regenerate_thumbnail(self, identifier: str, size: ThumbnailSize) -> Optional[Image.Image]:
        original = self.load(identifier)
        if original is None:
            return None

        thumbnail_data = self._encode(original, size.dimensions, size.quality)
        try:
            self._atomic_write(self._thumbnail_path(identifier, size), thumbnail_data)
            logger.info(f"Regenerated missing {size.value} thumbnail for {identifier}")
        except OSError as e:
            logger.error(f"Failed to persist regenerated thumbnail for {identifier}: {e}")

        # Return the stored encoding so later reads from disk match this one
        return self._decode(thumbnail_data)

    def read_bytes(self, identifier: str, size: Optional[ThumbnailSize] = None) -> Optional[bytes]:
        """
        Raw JPEG bytes of the original or of a thumbnail.

        A missing thumbnail is regenerated first, as in load_thumbnail.
        """
        if not self.is_valid_identifier(identifier):
            return None

        if size is None:
            path = self._photo_path(identifier)
        else:
            path = self._thumbnail_path(identifier, size)
            if not path.exists() and self.load_thumbnail(identifier, size) is None:
                return None

        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading {path.name}: {e}")
            return None

    def delete(self, identifier: str) -> int:
        """
        Delete the original and all thumbnails for an identifier.

        Each file is removed independently; a missing or locked file does not
        stop the others.

        :return: Number of files removed
        """
        if not self.is_valid_identifier(identifier):
            logger.warning(f"Skipping delete for invalid photo identifier: {identifier!r}")
            return 0

        paths = [self._photo_path(identifier)]
        paths.extend(self._thumbnail_path(identifier, size) for size in ThumbnailSize)

        removed = 0
        for path in paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Error deleting {path.name}: {e}")

        self._clear_cache_for_identifier(identifier)
        logger.info(f"Deleted photo files for {identifier} ({removed} files)")
        return removed

    def exists(self, identifier: str) -> bool:
        """Whether the original photo file exists"""
        if not self.is_valid_identifier(identifier):
            return False
        return self._photo_path(identifier).exists()

    def thumbnail_exists(self, identifier: str, size: ThumbnailSize) -> bool:
        if not self.is_valid_identifier(identifier):
            return False
        return self._thumbnail_path(identifier, size).exists()

    def _stored_files(self, directory: Path) -> Iterable[Path]:
        try:
            return [path for path in directory.iterdir() if path.is_file()]
        except OSError as e:
            logger.error(f"Error listing {directory.name}: {e}")
            return []

    def list_identifiers(self) -> Set[str]:
        """Identifiers that have an original on disk"""
        return {
            self.identifier_from_filename(path.name)
            for path in self._stored_files(self.photos_dir)
            if path.suffix == PHOTO_EXTENSION and not path.name.startswith(".")
        }

    def list_thumbnail_identifiers(self) -> Set[str]:
        """Identifiers that have at least one thumbnail on disk"""
        return {
            self.identifier_from_filename(path.name, thumbnail=True)
            for path in self._stored_files(self.thumbnails_dir)
            if path.suffix == PHOTO_EXTENSION and not path.name.startswith(".")
        }

    def cleanup_orphans(self, valid_identifiers: Set[str]) -> int:
        """
        Delete every stored file whose identifier is not in valid_identifiers.

        Leftover temp files from interrupted writes are removed too.

        :return: Number of files removed
        """
        removed = 0
        for directory, thumbnail in ((self.photos_dir, False), (self.thumbnails_dir, True)):
            for path in self._stored_files(directory):
                identifier = self.identifier_from_filename(path.name, thumbnail=thumbnail)
                if identifier in valid_identifiers and not path.name.startswith("."):
                    continue
                try:
                    path.unlink()
                    removed += 1
                    logger.info(f"Cleaned up orphaned photo file: {path.name}")
                except OSError as e:
                    logger.error(f"Error during photo cleanup of {path.name}: {e}")

        self._clear_all_caches()
        return removed

    def total_storage_used(self) -> int:
        """Total bytes used by originals and thumbnails"""
        return self.detailed_storage_info().total_size

    def detailed_storage_info(self) -> PhotoStorageInfo:
        original_size, photo_count = self._directory_usage(self.photos_dir)
        thumbnail_size, thumbnail_count = self._directory_usage(self.thumbnails_dir)
        return PhotoStorageInfo(
            original_photos_size=original_size,
            thumbnails_size=thumbnail_size,
            photo_count=photo_count,
            thumbnail_count=thumbnail_count,
        )

    def _directory_usage(self, directory: Path) -> Tuple[int, int]:
        total = 0
        count = 0
        for path in self._stored_files(directory):
            if path.name.startswith("."):
                continue
            try:
                total += path.stat().st_size
                count += 1
            except OSError as e:
                logger.error(f"Error calculating storage for {path.name}: {e}")
        return total, count

    def clear_all(self):
        """Delete every photo and thumbnail and recreate empty directories"""
        for directory in (self.photos_dir, self.thumbnails_dir):
            shutil.rmtree(directory, ignore_errors=True)
        self._ensure_directories()
        self._clear_all_caches()
        logger.info("Cleared all photos and thumbnails")

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _cache_if_current(self, cache: ImageCache, key: str, image: Image.Image, version: int):
        """Insert unless the cache was invalidated after version was read"""
        with self._cache_lock.write():
            if self._cache_version != version:
                logger.debug(f"Not caching {key}: invalidated during read")
                return
            cache.put(key, image)

    def _clear_cache_for_identifier(self, identifier: str):
        with self._cache_lock.write():
            self._cache_version += 1
            self._image_cache.pop(identifier)
            for size in ThumbnailSize:
                self._thumbnail_cache.pop(self._thumbnail_cache_key(identifier, size))

    def _clear_all_caches(self):
        with self._cache_lock.write():
            self._cache_version += 1
            self._image_cache.clear()
            self._thumbnail_cache.clear()


_default_store: Optional[PhotoStore] = None
_default_store_lock = threading.Lock()


def get_photo_store() -> PhotoStore:
    """Shared store rooted at PHOTO_STORAGE_DIR, created on first use."""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = PhotoStore()
        return _default_store
