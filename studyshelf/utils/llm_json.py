import json
import re


def strip_fences(raw):
    """Remove markdown fences from a model response, if present."""
    raw = (raw or "").strip()
    if raw.startswith("```"):
        lines = raw.split("\n")
        if lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        raw = "\n".join(lines[1:])
    return raw.strip()


def parse_json_loose(text, expect=dict):
    """
    Try several strategies to pull a JSON value of type `expect` out of a
    model response: the raw text, the fenced block, then the widest
    bracketed span, shrinking from the right.
    Raises ValueError when nothing parses.
    """
    text = text or ""
    opening, closing = ("[", "]") if expect is list else ("{", "}")

    candidates = [text.strip(), strip_fences(text)]
    m = re.search(r"```(?:json)?\s*([\s\S]*?)```", text, flags=re.IGNORECASE)
    if m:
        candidates.append(m.group(1).strip())

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except (TypeError, ValueError):
            continue
        if isinstance(value, expect):
            return value

    start, end = text.find(opening), text.rfind(closing)
    while start != -1 and end > start:
        try:
            value = json.loads(text[start:end + 1])
            if isinstance(value, expect):
                return value
        except ValueError:
            pass
        end = text.rfind(closing, 0, end)

    raise ValueError(f"Response contains no JSON {expect.__name__}: {text[:200]!r}")
