"""Sanitizer — turns raw model output into an embeddable HTML document.

The model is asked for a single HTML file but usually wraps it in markdown
fences and chatter. Cleaning is pure and deterministic:

1. strip code fences
2. cut everything before the doctype (or the opening <html> tag)
3. cut everything after the last </html>
4. rewrite same-page "#" links so they cannot navigate the embedding page
5. inject a smooth-scroll handler when rewritten anchors carry a target id
"""

from __future__ import annotations

import re

from geniesite.errors import InvalidDocumentError

VOID_HREF = "javascript:void(0)"
SCROLL_ATTR = "data-scroll-to"
SCRIPT_ID = "geniesite-anchor-scroll"

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+.-]*[ \t]*\r?\n?")
_DOCTYPE_RE = re.compile(r"<!DOCTYPE\s+html", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html", re.IGNORECASE)
_HTML_CLOSE_RE = re.compile(r"</html\s*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)
_BARE_HASH_HREF_RE = re.compile(r"""href\s*=\s*["']#["']""")
_ANCHOR_HREF_RE = re.compile(r"""href\s*=\s*["']#([^"']+)["']""")
_DOCUMENT_MARKER_RE = re.compile(r"<html|<!DOCTYPE", re.IGNORECASE)

SCROLL_SCRIPT = f"""
    <script id="{SCRIPT_ID}">
    document.addEventListener('DOMContentLoaded', function() {{
      var anchorLinks = document.querySelectorAll('[{SCROLL_ATTR}]');
      anchorLinks.forEach(function(link) {{
        link.addEventListener('click', function(e) {{
          e.preventDefault();
          var targetId = this.getAttribute('{SCROLL_ATTR}');
          var targetElement = document.getElementById(targetId);
          if (targetElement) {{
            targetElement.scrollIntoView({{ behavior: 'smooth', block: 'start' }});
          }}
        }});
      }});

      var voidLinks = document.querySelectorAll('a[href="{VOID_HREF}"]');
      voidLinks.forEach(function(link) {{
        link.addEventListener('click', function(e) {{
          e.preventDefault();
        }});
      }});
    }});
    </script>"""


def strip_fences(text: str) -> str:
    """Remove markdown code fences (with optional language tag) anywhere in the text.

    Repeats until nothing changes, since removing one fence can join
    neighbouring backticks into another.
    """
    while True:
        stripped = _FENCE_RE.sub("", text)
        if stripped == text:
            return stripped.strip()
        text = stripped


def extract_document(text: str) -> str:
    """Trim leading and trailing commentary around the HTML document.

    Text without any document marker is returned unchanged.
    """
    start = _DOCTYPE_RE.search(text) or _HTML_OPEN_RE.search(text)
    if start:
        text = text[start.start():]

    closings = list(_HTML_CLOSE_RE.finditer(text))
    if closings:
        text = text[: closings[-1].end()]
    return text


def rewrite_anchors(text: str) -> str:
    """Point "#" links at a no-op target, keeping the fragment id in a data attribute."""
    text = _BARE_HASH_HREF_RE.sub(f'href="{VOID_HREF}"', text)
    return _ANCHOR_HREF_RE.sub(
        lambda m: f'href="{VOID_HREF}" {SCROLL_ATTR}="{m.group(1)}"', text
    )


def inject_scroll_script(text: str) -> str:
    """Add the click-to-scroll handler before </body> (or </html>), at most once."""
    if SCROLL_ATTR not in text or SCRIPT_ID in text:
        return text

    for closing in (_BODY_CLOSE_RE, _HTML_CLOSE_RE):
        match = closing.search(text)
        if match:
            i = match.start()
            return text[:i] + SCROLL_SCRIPT + "\n" + text[i:]
    return text


def clean_generated_code(raw: str) -> str:
    """Run every cleaning step over the raw accumulated answer."""
    cleaned = strip_fences(raw)
    cleaned = extract_document(cleaned)
    cleaned = rewrite_anchors(cleaned)
    return inject_scroll_script(cleaned)


def is_html_document(code: str) -> bool:
    """True when the text carries a doctype or an opening <html> tag."""
    return bool(code) and _DOCUMENT_MARKER_RE.search(code) is not None


def sanitize_document(raw: str) -> str:
    """Clean the raw answer and insist that the result is an HTML document.

    Raises InvalidDocumentError otherwise, so callers never mistake an empty
    or prose-only generation for a finished site.
    """
    cleaned = clean_generated_code(raw)
    if not is_html_document(cleaned):
        raise InvalidDocumentError(
            "Generated code does not contain valid HTML structure"
        )
    return cleaned
