from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Variable:
    name: str
    value: str = ""
    profile: Optional[str] = None
    group: Optional[str] = None
    comment: Optional[str] = None
    # The <Variable> element it came from, engines may read extra attributes
    element: Any = None

    def __str__(self) -> str:
        suffix = f" [{self.profile}]" if self.profile else ""
        return f"{self.name}: {self.value}{suffix}"


@dataclass
class OutputTarget:
    """One file generated from a source file, with its own profile and variables."""

    path: str
    profile: Optional[str] = None
    contents: str = ""
    compiled: Optional[str] = None
    variables: List[Variable] = field(default_factory=list)


@dataclass
class SourceFile:
    path: str
    contents: str = ""
    partial: bool = False
    error: str = ""
    outputs: List[OutputTarget] = field(default_factory=list)
    # Merged dna.config settings for the file's folder
    configuration: Any = None

    @property
    def successful(self) -> bool:
        return not self.error


@dataclass
class ProcessResult:
    path: str
    success: bool = True
    error: str = ""
    generated_files: List[str] = field(default_factory=list)
    skipped_processing: bool = False


@dataclass
class Cascade:
    """State shared by every step of one batch of file changes.

    The lists are handed down the whole recursion by reference so siblings
    see what earlier steps already processed or generated.
    """

    generated_files: List[str] = field(default_factory=list)
    processed_files: List[str] = field(default_factory=list)
    configurations: Dict[str, Any] = field(default_factory=dict)
    results: List[ProcessResult] = field(default_factory=list)

    def was_generated(self, path: str) -> bool:
        return _contains(self.generated_files, path)

    def was_processed(self, path: str) -> bool:
        return _contains(self.processed_files, path)


def _contains(paths: List[str], path: str) -> bool:
    path = path.casefold()
    return any(p.casefold() == path for p in paths)
