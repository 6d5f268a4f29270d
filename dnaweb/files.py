import asyncio
import os
from typing import Iterable, List

READ_ATTEMPTS = 3
READ_RETRY_DELAY = 0.3


def file_exists(path: str) -> bool:
    return os.path.isfile(path)


def read_all_text(path: str) -> str:
    # newline="" keeps CR/LF pairs intact so tag removal sees them
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


async def read_all_text_async(path: str) -> str:
    """Read a file, retrying while an editor may still hold it open."""
    attempts = READ_ATTEMPTS
    while True:
        attempts -= 1
        try:
            return read_all_text(path)
        except FileNotFoundError:
            raise
        except OSError:
            if attempts == 0:
                raise
            await asyncio.sleep(READ_RETRY_DELAY)


def save_file(contents: str, path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(contents)


def matches_extension(path: str, extensions: Iterable[str]) -> bool:
    name = os.path.basename(path).lower()
    for ext in extensions:
        if ext in ("*", ".*", "*.*") or name.endswith(ext.lower()):
            return True
    return False


def get_directory_files(root: str, extensions: Iterable[str]) -> List[str]:
    """Returns every file below root whose name ends with one of the extensions"""
    extensions = list(extensions)
    found = []
    if not os.path.isdir(root):
        return found

    # Unreadable folders are skipped rather than failing the whole scan
    for folder, dirs, files in os.walk(root, onerror=lambda e: None):
        dirs.sort()
        for f in sorted(files):
            if matches_extension(f, extensions):
                found.append(os.path.join(folder, f))
    return found
