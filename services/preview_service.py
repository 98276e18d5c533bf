"""
Assembles a GeneratedCode bundle into one standalone HTML document for the
sandboxed preview frame.
"""
import re
from html import escape

from models.generation import GeneratedCode

# Response header for previews served directly; mirrors the iframe's sandbox="allow-scripts"
PREVIEW_CSP = "sandbox allow-scripts"

PREVIEW_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{title}</title>
{stylesheets}
    <style>{css}</style>
  </head>
  <body>
{html}
{scripts}
    <script>{javascript}</script>
  </body>
</html>
"""


def _inline(text: str, tag: str) -> str:
    # keep an embedded "</style>" or "</SCRIPT >" from ending the block early
    return re.sub(rf"</({tag})", r"<\\/\1", text, flags=re.IGNORECASE)


def build_preview_document(code: GeneratedCode) -> str:
    stylesheets = "\n".join(
        f'    <link rel="stylesheet" href="{escape(url, quote=True)}">' for url in code.external_css
    )
    scripts = "\n".join(
        f'    <script src="{escape(url, quote=True)}"></script>' for url in code.external_js
    )
    return PREVIEW_TEMPLATE.format(
        title=escape(code.title),
        stylesheets=stylesheets,
        css=_inline(code.css, "style"),
        html=code.html,
        scripts=scripts,
        javascript=_inline(code.javascript, "script"),
    )
