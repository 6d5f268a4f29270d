"""Variables declared in <!--$ ... $--> data blocks and their substitution.

A data block holds a small XML document::

    <Data>
        <Variable Name="Title">Home</Variable>
        <Profile Name="server">
            <Variable Name="Title">Home (server)</Variable>
        </Profile>
        <Group Name="Ids" Profile="server">
            <!-- Shown as the property comment -->
            <Variable Name="MainId" Type="string"><Value>main</Value></Variable>
        </Group>
    </Data>
"""
import os
import re
from datetime import datetime
from typing import List, Optional

from lxml import etree

from .data import Variable
from .errors import CircularReferenceError, MalformedDataError, UnresolvedVariableError
from .tags import DNA_DATE, DNA_VARIABLE_PREFIX, VARIABLE_USE, replace_tag

DNA_PROJECT_PATH = "projectpath"
DNA_FILE_PATH = "filepath"

# Guards against a variable whose value refers back to itself
MAX_SUBSTITUTIONS = 10000


def same_profile(first: Optional[str], second: Optional[str]) -> bool:
    return (first or "").casefold() == (second or "").casefold()


DATA_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def parse_data_block(payload: str):
    payload = payload.strip()
    try:
        # Bytes so an <?xml encoding=...?> declaration is accepted
        return etree.fromstring(payload.encode("utf-8"), DATA_PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MalformedDataError(f"Malformed data region {payload}. {e}") from e


def extract_data(payload: str, variables: List[Variable]) -> None:
    """Parse a data block and add its variables to the list"""
    root = parse_data_block(payload)

    extract_variables(root, variables)

    for profile in root.iterchildren("Profile"):
        extract_variables(profile, variables, profile=profile.get("Name"))

    for group in root.iterchildren("Group"):
        extract_variables(group, variables, profile=group.get("Profile"), group=group.get("Name"))


def extract_variables(element, variables: List[Variable], profile: Optional[str] = None,
                      group: Optional[str] = None) -> None:
    for item in element.iterchildren("Variable"):
        value_element = item.find("Value")
        comment_element = item.find("Comment")

        variable = Variable(
            name=item.get("Name"),
            profile=item.get("Profile", profile),
            group=item.get("Group", group),
            value=element_text(value_element if value_element is not None else item),
            comment=element_text(comment_element) if comment_element is not None else item.get("Comment"),
            element=item,
        )

        if variable.profile == "":
            variable.profile = None

        if not variable.comment:
            previous = item.getprevious()
            if previous is not None and previous.tag is etree.Comment:
                variable.comment = previous.text

        if not variable.name:
            raise MalformedDataError(f"Variable has no name {etree.tostring(item, encoding='unicode', with_tail=False)}")

        add_or_update(variables, variable)


def element_text(element) -> str:
    """Text of an element and its child elements, leaving out comments"""
    parts = [element.text or ""]
    for child in element:
        if isinstance(child.tag, str):
            parts.append(element_text(child))
        parts.append(child.tail or "")
    return "".join(parts)


def add_or_update(variables: List[Variable], variable: Variable) -> None:
    name = variable.name.casefold()
    for existing in variables:
        if existing.name.casefold() == name and same_profile(existing.profile, variable.profile):
            existing.value = variable.value
            return
    variables.append(variable)


def resolve_variable(variables: List[Variable], name: str, profile: Optional[str]) -> Variable:
    """Find the value for a name under a profile, falling back to the unprofiled one"""
    key = name.casefold()

    for variable in variables:
        if variable.name.casefold() == key and same_profile(variable.profile, profile):
            return variable

    if profile:
        for variable in variables:
            if variable.name.casefold() == key and not variable.profile:
                return variable

    raise UnresolvedVariableError(f"Variable not found {name} for profile '{profile or ''}'")


# .NET style custom date tokens, longest first
DATE_TOKENS = re.compile(r"'[^']*'|yyyy|yy|MMMM|MMM|MM|M|dddd|ddd|dd|d|HH|H|hh|h|mm|m|ss|s|tt|.", re.DOTALL)

DATE_FORMATTERS = {
    "yyyy": lambda d: f"{d.year:04d}",
    "yy": lambda d: f"{d.year % 100:02d}",
    "MMMM": lambda d: d.strftime("%B"),
    "MMM": lambda d: d.strftime("%b"),
    "MM": lambda d: f"{d.month:02d}",
    "M": lambda d: str(d.month),
    "dddd": lambda d: d.strftime("%A"),
    "ddd": lambda d: d.strftime("%a"),
    "dd": lambda d: f"{d.day:02d}",
    "d": lambda d: str(d.day),
    "HH": lambda d: f"{d.hour:02d}",
    "H": lambda d: str(d.hour),
    "hh": lambda d: f"{d.hour % 12 or 12:02d}",
    "h": lambda d: str(d.hour % 12 or 12),
    "mm": lambda d: f"{d.minute:02d}",
    "m": lambda d: str(d.minute),
    "ss": lambda d: f"{d.second:02d}",
    "s": lambda d: str(d.second),
    "tt": lambda d: "AM" if d.hour < 12 else "PM",
}


def format_date(fmt: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    if "%" in fmt:
        return now.strftime(fmt)

    result = []
    for token in DATE_TOKENS.findall(fmt):
        if token.startswith("'") and token.endswith("'") and len(token) > 1:
            result.append(token[1:-1])
        elif token in DATE_FORMATTERS:
            result.append(DATE_FORMATTERS[token](now))
        else:
            result.append(token)
    return "".join(result)


def resolve_dna_variable(name: str, file_path: str) -> str:
    variable = name[len(DNA_VARIABLE_PREFIX):]

    if date := DNA_DATE.search(variable):
        compute = lambda: format_date(date.group(1))
    elif variable.strip().casefold() == DNA_PROJECT_PATH:
        compute = os.getcwd
    elif variable.strip().casefold() == DNA_FILE_PATH:
        compute = lambda: file_path
    else:
        raise UnresolvedVariableError(f"Dna Variable not found {variable}")

    try:
        return compute()
    except Exception as e:
        raise UnresolvedVariableError(f"Unexpected error processing Dna Variable {variable}.\n{e}") from e


def substitute(contents: str, variables: List[Variable], profile: Optional[str], file_path: str) -> str:
    """Replace every $$name$$ token until none are left"""
    count = 0
    while match := VARIABLE_USE.search(contents):
        count += 1
        if count > MAX_SUBSTITUTIONS:
            raise CircularReferenceError(f"Variable {match.group(1)} keeps expanding, check for variables that refer to themselves")

        name = match.group(1)
        if name.startswith(DNA_VARIABLE_PREFIX):
            value = resolve_dna_variable(name, file_path)
        else:
            value = resolve_variable(variables, name, profile).value

        # Like the tags, a token eats one line break straight after it
        contents = replace_tag(contents, match, value)
    return contents
