from .engine import BaseEngine


class HtmlEngine(BaseEngine):
    """Turns .dnaweb sources into plain .html pages"""

    name = "Html"
    extensions = [".dnaweb", "._dnaweb"]
    output_extension = ".html"
