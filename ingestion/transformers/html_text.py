"""
HTML to plaintext conversion for issue descriptions and comments
"""

from typing import Any, List

from bs4 import BeautifulSoup

BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "caption", "dd", "div", "dl",
    "dt", "figcaption", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hr", "li", "ol", "p", "section", "table", "tr", "ul",
]
CELL_TAGS = ["td", "th"]
DROP_TAGS = ["script", "style", "head", "noscript"]

# Stands in for a <pre> block while the rest of the text is collapsed
PRE_MARKER = "\x00pre:{}\x00"


def to_plain_text(html: Any) -> str:
    """
    Convert an HTML fragment to plaintext.

    Block elements become line breaks, table cells are separated by a space,
    inline markup is dropped and runs of whitespace inside a line collapse to
    one space. ``<pre>`` content keeps its own line breaks and indentation.
    No wrapping is applied, so ``"<p>Hello <b>world</b></p>"`` becomes
    ``"Hello world"``.
    """
    if not html:
        return ""
    if not isinstance(html, str):
        html = str(html)

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(DROP_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")

    preformatted: List[List[str]] = []
    for pre in soup.find_all("pre"):
        if pre.find_parent("pre") is not None:
            continue
        text = pre.get_text().strip("\n")
        preformatted.append([line.rstrip() for line in text.splitlines()])
        pre.replace_with(f"\n{PRE_MARKER.format(len(preformatted) - 1)}\n")

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")
    for tag in soup.find_all(CELL_TAGS):
        tag.insert_after(" ")

    markers = {PRE_MARKER.format(i): block for i, block in enumerate(preformatted)}

    lines: List[str] = []
    for raw_line in soup.get_text().splitlines():
        line = " ".join(raw_line.split())
        if line in markers:
            if not markers[line]:
                continue
            if lines and lines[-1]:
                lines.append("")
            lines.extend(markers[line])
            lines.append("")
            continue
        if line or (lines and lines[-1]):
            lines.append(line)

    return "\n".join(lines).strip("\n")
