import os
from typing import List, Optional, Tuple

from .errors import CircularReferenceError
from .files import file_exists, read_all_text
from .tags import DIRECTIVE_TAG, tag_parts


def strip_include_profile(include_path: str) -> str:
    """Drop a trailing :profile, leaving drive letters like C:\\ alone.

    Only a path with exactly one colon carries a profile.
    """
    if include_path.count(":") != 1:
        return include_path
    index = include_path.find(":")
    if include_path[index + 1:index + 2] in ("\\", "/"):
        return include_path
    return include_path[:index]


def same_path(first: str, second: str) -> bool:
    return os.path.abspath(first).casefold() == os.path.abspath(second).casefold()


class IncludeTracker:
    """Which monitored files include which, so an edit can cascade upwards.

    Include tags are found with the tag regex alone, nothing is expanded,
    so a partial that does not parse still shows up as referenced.
    """

    def __init__(self, engine):
        self.engine = engine
        self.files: List[Tuple[str, List[str]]] = []

    def rebuild_all(self) -> None:
        self.files = [(path, self.resolved_include_paths(path)) for path in self.engine.monitored_files()]

    def includes_of(self, path: str) -> List[str]:
        for file_path, includes in self.files:
            if same_path(file_path, path):
                return includes
        return []

    def resolved_include_paths(self, file_path: str) -> List[str]:
        if not file_exists(file_path):
            return []

        try:
            contents = read_all_text(file_path)
        except (OSError, UnicodeDecodeError):
            return []

        paths = []
        for match in DIRECTIVE_TAG.finditer(contents):
            keyword, argument = tag_parts(match)
            if keyword != "include" or not argument.strip():
                continue

            include_path = strip_include_profile(argument.strip()).strip()
            if resolved := self.engine.find_include_file(file_path, include_path):
                paths.append(resolved)
        return paths

    def find_referencers(self, path: str, existing: Optional[List[str]] = None) -> List[str]:
        """Every monitored file that includes path, directly or through others.

        existing collects the includes seen along the chain walked so far; a
        file that shows up in its own chain is a cycle.
        """
        existing = existing if existing is not None else []
        if not path or not path.strip():
            return []

        referencers = [file_path for file_path, includes in self.files
                       if any(same_path(include, path) for include in includes)]

        existing.extend(self.resolved_include_paths(path))
        if any(same_path(include, path) for include in existing):
            raise CircularReferenceError(f"Circular reference detected to {path}")

        found = list(referencers)
        for reference in referencers:
            # Each branch walks with its own copy of the chain
            found.extend(self.find_referencers(reference, list(existing)))
        return found
