"""Generates C# sources from .dnacs files.

On top of the usual tags a .dnacs file can ask for a block of properties
built from the variables of a data group::

    public class DomIds
    {
        <!--# properties group=DomIds #-->
    }

Each variable of the group becomes ``public Type Name { get; set; } = value;``
wrapped in a ``#region``, with its comment as the XML doc summary.
"""
from typing import List, Optional, Tuple

from .data import OutputTarget, SourceFile, Variable
from .engine import BaseEngine
from .errors import MalformedDataError, MalformedTagError, UnknownDirectiveError
from .tags import CODE_TAG, find_tag, replace_tag


def parse_tag_items(argument: str) -> List[Tuple[str, str]]:
    """Split "group=DomIds; value=Some thing;" into name/value pairs"""
    items = []
    for item in argument.split(";"):
        item = item.strip()
        if not item:
            continue
        if item.find("=") <= 0:
            raise MalformedTagError(f"Invalid CSharp data item: {item}")
        name, value = item.split("=", 1)
        items.append((name, value))
    return items


def variable_type(variable: Variable) -> Optional[str]:
    element = variable.element
    if element is None:
        return None
    value = element.get("Type")
    if value is None:
        child = element.find("Type")
        value = child.text if child is not None else None
    return value


def value_setter(type: str, value: str) -> str:
    if type.lower() == "string":
        return f' = "{value}";'
    return f" = {value};"


def xml_comment(comment: str, indent: str) -> str:
    lines = comment.replace("\r", "").split("\n")

    if len(lines) > 1 and not lines[-1].strip():
        lines = lines[:-1]
    if len(lines) > 1 and not lines[0].strip():
        lines = lines[1:]

    # Comments written indented like the code around them lose that indent
    if all(line.startswith(indent) for line in lines):
        lines = [line[len(indent):] for line in lines]

    result = f"{indent}/// <summary>"
    for i, line in enumerate(lines):
        if (i == 0 or i == len(lines) - 1) and not line.strip():
            continue
        result += f"\n{indent}/// {line}"
    result += f"\n{indent}/// </summary>\n"
    return result


def indentation_before(contents: str, index: int) -> int:
    count = 0
    i = index - 1
    while i > 0 and contents[i] == " ":
        count += 1
        i -= 1
    return count


class CSharpEngine(BaseEngine):
    name = "CSharp"
    extensions = [".dnacs"]
    output_extension = ".cs"

    async def post_process_file(self, source: SourceFile) -> None:
        for output in source.outputs:
            while match := find_tag(output.contents, CODE_TAG):
                type = match.group(1).strip()
                items = parse_tag_items((match.group(2) or "").strip())

                if type == "properties":
                    self.process_properties_tag(output, match, items)
                else:
                    raise UnknownDirectiveError(f"Unknown match {match.group(0)}")

    def process_properties_tag(self, output: OutputTarget, match, items: List[Tuple[str, str]]) -> None:
        group = next((value for name, value in items if name.strip().casefold() == "group"), None)

        # No group given means the variables outside any group
        variables = [variable for variable in output.variables if variable.group == group]

        indent = " " * indentation_before(output.contents, match.start())

        output.contents = replace_tag(output.contents, match, "", remove_newline=False)
        if not variables:
            return

        result = f"#region {group or ''}\n\n"
        for variable in variables:
            type = variable_type(variable)
            if not type:
                raise MalformedDataError(f"Variable has not specified a type. {variable.name}")

            if variable.comment:
                result += xml_comment(variable.comment, indent)
            result += f"{indent}public {type} {variable.name} {{ get; set; }}{value_setter(type, variable.value)}\n\n"
        result += f"{indent}#endregion\n"

        output.contents = output.contents[:match.start()] + result + output.contents[match.start():]
