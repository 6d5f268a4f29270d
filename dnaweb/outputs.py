import os
from typing import Optional, Tuple

from .tags import DEFAULT_PROFILE_ONLY, split_profile
from .variables import same_profile


def parse_output_argument(argument: str) -> Tuple[str, Optional[str]]:
    """Split an output tag argument "path" or "path:profile" """
    path, profile = split_profile(argument.strip())
    return path.strip(), profile.strip() if profile is not None else None


def resolve_output_path(path: str, base_dir: str, output_extension: Optional[str]) -> str:
    """Absolute destination for an output tag path, adding the default extension when missing"""
    if output_extension and not os.path.splitext(path)[1]:
        path += output_extension
    path = os.path.expanduser(path)
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(path)


def default_output_path(source_path: str, output_dir: str, output_extension: Optional[str]) -> str:
    """Same base name as the source, in the output folder, with the engine extension"""
    name = os.path.basename(source_path)
    if output_extension is not None:
        name = os.path.splitext(name)[0] + output_extension
    return os.path.normpath(os.path.join(output_dir, name))


def profile_applies(tag_profile: Optional[str], target_profile: Optional[str]) -> bool:
    """Whether an include/inline marked with tag_profile applies to an output.

    No profile applies everywhere, "!" only to outputs without a profile,
    anything else only to outputs with that profile.
    """
    if not tag_profile:
        return True
    if tag_profile == DEFAULT_PROFILE_ONLY:
        return not target_profile
    return same_profile(tag_profile, target_profile)
