"""Display node: result sink, plus content-type detection for its content."""
import re

from ..engine.graph import Node, NodeType
from ..providers.base import GenerationProvider
from .base import BaseNode, DataType, FieldSpec, NodeResult
from .registry import NodeRegistry

CONTENT_TYPES = ("text", "markdown", "html")

_CODE_BLOCK = re.compile(r"```(html|xml)\s*([\s\S]*?)\s*```", re.IGNORECASE)
_RAW_HTML = re.compile(r"^(<!DOCTYPE html>|<html)", re.IGNORECASE)

_HTML_SHELL = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <script src="https://cdn.tailwindcss.com"></script>
    <link href="https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css" rel="stylesheet">
    <style>body {{ padding: 2rem; font-family: system-ui, sans-serif; }}</style>
</head>
<body>
    {body}
</body>
</html>"""


def extract_html_content(content: str) -> str | None:
    """Return the HTML document carried by ``content``, if any.

    Accepts a fenced ```html / ```xml block that looks like markup, or a raw
    document starting with a doctype or <html> tag.
    """
    if not content:
        return None
    match = _CODE_BLOCK.search(content)
    if match and match.group(2):
        extracted = match.group(2)
        if "<" in extracted and ">" in extracted:
            return extracted
    if _RAW_HTML.match(content.strip()):
        return content
    return None


def normalize_html(html: str) -> str:
    """Wrap a fragment without <body> into a renderable document."""
    if "<body" not in html:
        return _HTML_SHELL.format(body=html)
    return html


def infer_content_type(content: str) -> str:
    if extract_html_content(content):
        return "html"
    if "# " in content or "**" in content or "```" in content:
        return "markdown"
    return "text"


@NodeRegistry.register
class DisplayNode(BaseNode):
    NODE_TYPE = NodeType.DISPLAY
    DISPLAY_NAME = "结果展示"
    DESCRIPTION = "Show the incoming result as text, markdown or HTML"

    @classmethod
    def FIELDS(cls):
        return {
            "content": FieldSpec(dtype=DataType.TEXT, default="", editable=False),
            "contentType": FieldSpec(
                dtype=DataType.CHOICE, default="text", choices=list(CONTENT_TYPES), editable=False,
            ),
        }

    async def execute(self, node: Node, input: str, provider: GenerationProvider) -> NodeResult:
        # Outgoing edges, if any, carry the same content on.
        return NodeResult(changes={"content": input}, output=input)
