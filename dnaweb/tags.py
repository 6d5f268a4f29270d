"""Regex grammars for the comment-embedded tags and the splice helpers.

Every rewrite loop in dnaweb works the same way: search the whole buffer for
the first match, splice a replacement in, then search again from the start of
the mutated buffer. Offsets from a previous match are never reused, so an edit
can never corrupt a later one. The cost is O(n*m) for n tags in an m character
buffer, which is fine for hand-written web sources.
"""
import re
from typing import Match, Optional, Pattern, Tuple

# <!--@ include header @-->
DIRECTIVE_TAG = re.compile(r"<!--@\s*(\w+)\s*(.*?)\s*@-->", re.DOTALL)

# <!--$ <Data>...</Data> $-->
DATA_TAG = re.compile(r"<!--\$(.+?(?=\$-->))\$-->", re.DOTALL)

# $$variable$$, but not the $$!live$$ variables
VARIABLE_USE = re.compile(r"\$\$(?!!)(.+?(?=\$\$))\$\$")

# <!--# properties group=Name #-->
CODE_TAG = re.compile(r"<!--#\s*(\w+)\s*(.*?)\s*#-->", re.DOTALL)

# dna.Date("yyyy-MM-dd")
DNA_DATE = re.compile(r'Date\("(.+?(?="\)))"\)', re.DOTALL)

DNA_VARIABLE_PREFIX = "dna."

# Marks an include or inline that only applies to outputs without a profile
DEFAULT_PROFILE_ONLY = "!"


def find_tag(contents: str, pattern: Pattern) -> Optional[Match]:
    return pattern.search(contents)


def tag_parts(match: Match) -> Tuple[str, str]:
    """Returns the lower-cased keyword and the raw argument of a two group tag"""
    return match.group(1).lower().strip(), match.group(2) or ""


def replace_tag(contents: str, match: Match, new_content: str, remove_newline: bool = True) -> str:
    """Splice new_content over the matched span.

    With remove_newline a single CR and/or LF straight after the tag is eaten
    too, so a tag on a line of its own leaves no blank line behind.
    """
    start, end = match.start(), match.end()
    if remove_newline:
        if contents[end:end + 1] == "\r":
            end += 1
        if contents[end:end + 1] == "\n":
            end += 1
    return contents[:start] + (new_content or "") + contents[end:]


def split_profile(argument: str) -> Tuple[str, Optional[str]]:
    """Split "path:profile" into its parts. Only a single colon counts."""
    if argument.count(":") == 1:
        path, profile = argument.split(":")
        return path, profile
    return argument, None


def split_inline(argument: str) -> Tuple[str, Optional[str]]:
    """Split ":profile content..." into (content, profile)"""
    if not argument.startswith(":"):
        return argument, None

    end = re.search(r"[ \r\n]", argument)
    if end is None:
        return "", argument[1:]

    # Skip the separator following the profile name as well
    return argument[end.start() + 1:], argument[1:end.start()]
