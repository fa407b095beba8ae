import re
from dataclasses import dataclass

from flask import current_app

from studyshelf.services.errors import OcrError, ProviderError
from studyshelf.utils.llm_json import parse_json_loose

EXTRACTION_PROMPT = """Analyze the text extracted from the cover page of a book (given as context) and return ONLY a JSON object with the following structure:
{
  "title": "exact book title as it appears",
  "author": "exact author name as it appears"
}

If you cannot determine the title or the author, use "Unknown" for that field.
Return ONLY the JSON object, no additional text or explanation.
"""

GENERIC_PROMPT = """The title and author of a document could not be read from its first page. The text of that page is given as context.

Invent a short, descriptive generic title that reflects what the content is about, and a generic author label (for example "Course Notes Author" or "Anonymous Publisher"). Never answer "Unknown" and never leave a field empty.

Return ONLY a JSON object:
{"title": "...", "author": "..."}
"""

FALLBACK_TITLE = "Untitled Document"
FALLBACK_AUTHOR = "Anonymous"


@dataclass
class DocumentMetadata:
    title: str
    author: str

    def to_dict(self):
        return {"title": self.title, "author": self.author}


def _usable(value):
    return isinstance(value, str) and value.strip() != "" and value.strip().lower() != "unknown"


def _ask(gateway, kind, context, instruction):
    raw = gateway.complete(context, instruction, kind=kind)
    data = parse_json_loose(raw, expect=dict)
    return str(data.get("title") or "").strip(), str(data.get("author") or "").strip()


def _title_from_text(text):
    for line in (text or "").splitlines():
        line = re.sub(r"\s+", " ", line).strip()
        if len(line) >= 3 and _usable(line):
            return line[:120]
    return FALLBACK_TITLE


def extract_metadata(first_page_url, ocr, gateway, provider=None, fallback_provider=None):
    """
    OCR the first page and ask a provider for the document's title and author.

    When the answer is unparsable or a field is "Unknown", a second prompt
    asks for a content-derived generic title/author instead. The returned
    title and author are never empty.
    """
    log = current_app.logger

    try:
        text = ocr.extract(first_page_url, 1)
    except OcrError as e:
        log.warning(f"Cover OCR failed, continuing without text: {e}")
        text = ""
    context = text or "(no text could be extracted from the first page)"

    title, author = "", ""
    try:
        title, author = _ask(gateway, provider, context, EXTRACTION_PROMPT)
        if _usable(title) and _usable(author):
            log.info(f"Metadata extracted: {title!r} by {author!r}")
            return DocumentMetadata(title=title[:255], author=author[:255])
        log.info(f"Metadata inconclusive (title={title!r}, author={author!r}), asking for a generic one")
    except (ProviderError, ValueError) as e:
        log.warning(f"Metadata extraction failed, asking for a generic one: {e}")

    generic_title, generic_author = "", ""
    try:
        generic_title, generic_author = _ask(gateway, fallback_provider, context, GENERIC_PROMPT)
    except (ProviderError, ValueError) as e:
        log.warning(f"Generic metadata prompt failed: {e}")

    if not _usable(title):
        title = generic_title if _usable(generic_title) else _title_from_text(text)
    if not _usable(author):
        author = generic_author if _usable(generic_author) else FALLBACK_AUTHOR

    log.info(f"Metadata (fallback): {title!r} by {author!r}")
    return DocumentMetadata(title=title[:255], author=author[:255])
