"""Classification of files as binary, media or OS metadata by name and content."""

import os
from pathlib import Path
from typing import AbstractSet

from ctxtree.types import PathType

# Images, audio and video. Tree views always surface these.
MEDIA_EXTENSIONS = frozenset(
    {
        # Images
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".svg",
        ".ico",
        ".webp",
        ".bmp",
        ".tiff",
        # Audio
        ".mp3",
        ".wav",
        ".flac",
        ".aac",
        ".ogg",
        ".m4a",
        # Video
        ".mp4",
        ".avi",
        ".mov",
        ".mkv",
        ".m4v",
        ".3gp",
        ".webm",
    }
)

# Files whose bytes are never useful as text context
BINARY_EXTENSIONS = frozenset(
    {
        # Executables and shared libraries
        ".exe",
        ".dll",
        ".bin",
        ".so",
        ".dylib",
        ".sys",
        ".msi",
        ".com",
        # Compiled code and object files
        ".o",
        ".obj",
        ".a",
        ".lib",
        ".pyd",
        ".class",
        ".jar",
        ".war",
        ".rlib",
        ".rmeta",
        ".pyc",
        ".pyo",
        # Disk and firmware images
        ".iso",
        ".img",
        ".vmdk",
        ".qcow2",
        ".vdi",
        ".rom",
        ".dmg",
        ".hex",
        ".elf",
        # Multimedia beyond the common media set
        ".vob",
        ".swf",
        ".mpg",
        ".mpeg",
        # Graphics
        ".psd",
        ".ai",
        ".heic",
        ".heif",
        ".raw",
        ".cr2",
        ".nef",
        ".arw",
        ".dng",
        ".exr",
        ".hdr",
        # Fonts
        ".ttf",
        ".otf",
        ".woff",
        ".woff2",
        ".eot",
        # Databases
        ".db",
        ".sqlite",
        ".sqlite3",
        ".mdb",
        ".accdb",
        ".dbf",
        ".db-journal",
        ".dat",
        ".idx",
        # Archives
        ".zip",
        ".rar",
        ".7z",
        ".tar",
        ".gz",
        ".bz2",
        ".xz",
        ".tgz",
        ".pkg",
        ".deb",
        ".rpm",
        ".whl",
        # 3D and CAD
        ".glb",
        ".stl",
        ".fbx",
        ".dwg",
        ".3ds",
        ".blend",
        ".c4d",
        ".usdz",
        # Textures
        ".ktx",
        ".ktx2",
        ".dds",
        ".pvr",
        # Certificates and captures
        ".pcap",
        ".der",
        ".pfx",
        ".p12",
        # Scientific data
        ".fits",
        ".hdf",
        ".hdf5",
        ".mat",
        ".dcm",
        # Office documents
        ".pdf",
        ".doc",
        ".docx",
        ".xls",
        ".xlsx",
        ".ppt",
        ".pptx",
        ".odt",
        ".ods",
        ".odp",
        # Game assets
        ".pak",
        ".wad",
        ".unity3d",
        ".unitypackage",
        # Generated or minified text that is useless as context
        ".min.js",
        ".min.css",
        # Temporary and editor files
        ".tmp",
        ".temp",
        ".swp",
        ".swo",
        ".bak",
    }
)

# OS metadata that never belongs in any output
SYSTEM_FILE_NAMES = frozenset(
    {
        ".DS_Store",
        ".AppleDouble",
        ".LSOverride",
        ".Spotlight-V100",
        ".Trashes",
        ".fseventsd",
        "Thumbs.db",
        "ehthumbs.db",
        "desktop.ini",
        "Icon\r",
    }
)

# Extensions spanning more than one dot are checked by suffix rather than set lookup
_COMPOUND_BINARY_EXTENSIONS = tuple(ext for ext in BINARY_EXTENSIONS if ext.count(".") > 1)


def _has_extension(name: str, extensions: AbstractSet[str]) -> bool:
    lowered = name.lower()
    dot = lowered.rfind(".")
    if dot == -1:
        return False
    return lowered[dot:] in extensions


def is_media_file(path: PathType) -> bool:
    """Check whether a path names an image, audio or video file.

    The check is based purely on the extension and is case-insensitive.

    Example:
        >>> is_media_file("assets/logo.PNG")
        True
        >>> is_media_file("src/main.py")
        False
    """
    return _has_extension(os.path.basename(os.fspath(path)), MEDIA_EXTENSIONS)


def is_binary_extension(path: PathType) -> bool:
    """Check whether a path has a known binary extension.

    Media extensions count as binary too, since their bytes are not text.

    Example:
        >>> is_binary_extension("build/app.exe")
        True
        >>> is_binary_extension("static/app.min.js")
        True
        >>> is_binary_extension("static/app.js")
        False
    """
    name = os.path.basename(os.fspath(path))
    if _has_extension(name, BINARY_EXTENSIONS) or _has_extension(name, MEDIA_EXTENSIONS):
        return True
    return name.lower().endswith(_COMPOUND_BINARY_EXTENSIONS)


def is_system_file(path: PathType) -> bool:
    """Check whether a path names an OS metadata file such as ``.DS_Store``.

    AppleDouble resource forks (``._name``) are treated as system files as well.

    Example:
        >>> is_system_file("photos/Thumbs.db")
        True
        >>> is_system_file("docs/._readme.md")
        True
        >>> is_system_file("README.md")
        False
    """
    name = os.path.basename(os.fspath(path))
    return name in SYSTEM_FILE_NAMES or name.startswith("._")


def looks_binary(file_path: PathType, chunk_size: int = 8192) -> bool:
    """Detect binary content by inspecting the first bytes of a file.

    Used for files whose extension says nothing about their content. A file is
    considered binary when the sampled chunk contains a null byte, cannot be decoded
    as text, or contains more than 1% control characters other than common
    whitespace. Empty files are text.

    Args:
        file_path: Path to the file to analyze.
        chunk_size: Number of bytes to sample. Defaults to 8192.

    Returns:
        True if the file appears to be binary, False if it appears to be text.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(Path(file_path), "rb") as file:
        chunk = file.read(chunk_size)

    if not chunk:
        return False

    if b"\0" in chunk:
        return True

    for encoding in ("utf-8", "cp1252"):
        try:
            chunk.decode(encoding)
        except UnicodeDecodeError:
            continue
        # Allow tab (9), newline (10) and carriage return (13)
        control_chars = sum(1 for byte in chunk if byte < 32 and byte not in (9, 10, 13))
        return control_chars / len(chunk) > 0.01

    printable_chars = sum(1 for byte in chunk if 32 <= byte < 127 or byte in (9, 10, 13))
    return printable_chars / len(chunk) < 0.95
