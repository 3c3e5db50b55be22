"""Wiki-link parsing and rewriting.

Links take three forms: ``[[Target Name]]``, ``[[folder/target|Alias]]`` and
id tokens ``[[id:doc-123|Display Text]]``. Id tokens survive renames and
moves; name and path links are kept working for existing vaults.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable, List, Optional, Tuple

WIKILINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")
ID_TOKEN_PREFIX = "id:"


@dataclass(frozen=True)
class WikiLink:
    target: str
    alias: Optional[str] = None

    @property
    def document_id(self) -> Optional[str]:
        """Referenced id for an id token, else None."""
        if self.target.startswith(ID_TOKEN_PREFIX):
            return self.target[len(ID_TOKEN_PREFIX):].strip() or None
        return None


def parse_link(raw: str) -> WikiLink:
    target, sep, alias = raw.partition("|")
    return WikiLink(target=target.strip(), alias=alias if sep else None)


def extract_links(content: str) -> List[WikiLink]:
    """All links in order of appearance, empty targets dropped."""
    links = []
    for match in WIKILINK_PATTERN.finditer(content or ""):
        link = parse_link(match.group(1))
        if link.target:
            links.append(link)
    return links


def id_token(document_id: str, display: Optional[str] = None) -> str:
    if display:
        return f"[[{ID_TOKEN_PREFIX}{document_id}|{display}]]"
    return f"[[{ID_TOKEN_PREFIX}{document_id}]]"


def replace_link_target(content: str, old_target: str, new_target: str) -> Tuple[str, int]:
    """Rewrite ``[[old]]`` and ``[[old|alias]]`` to point at `new_target`."""
    if not old_target or old_target == new_target:
        return content, 0
    pattern = re.compile(r"\[\[" + re.escape(old_target) + r"(\|[^\]]*)?\]\]")
    return pattern.subn(lambda match: f"[[{new_target}{match.group(1) or ''}]]", content)


def replace_link_prefix(content: str, old_prefix: str, new_prefix: str) -> Tuple[str, int]:
    """
    Rewrite links below a folder path: ``[[old/x/doc]]`` becomes ``[[new/x/doc]]``.

    A link to the folder path itself is left alone.
    """
    old_prefix = old_prefix.strip("/")
    new_prefix = new_prefix.strip("/")
    if not old_prefix or old_prefix == new_prefix:
        return content, 0
    pattern = re.compile(r"\[\[" + re.escape(old_prefix) + r"/([^\]|]+)(\|[^\]]*)?\]\]")
    replacement_prefix = f"{new_prefix}/" if new_prefix else ""
    return pattern.subn(
        lambda match: f"[[{replacement_prefix}{match.group(1)}{match.group(2) or ''}]]",
        content,
    )


def rewrite_links(content: str, replace: Callable[[WikiLink], Optional[str]]) -> Tuple[str, int]:
    """
    Replace whole links through a callback.

    `replace` receives each parsed link and returns the new link text, or
    None to keep the original.
    """
    count = 0

    def _substitute(match: re.Match[str]) -> str:
        nonlocal count
        replacement = replace(parse_link(match.group(1)))
        if replacement is None or replacement == match.group(0):
            return match.group(0)
        count += 1
        return replacement

    return WIKILINK_PATTERN.sub(_substitute, content or ""), count


__all__ = [
    "ID_TOKEN_PREFIX",
    "WIKILINK_PATTERN",
    "WikiLink",
    "extract_links",
    "id_token",
    "parse_link",
    "replace_link_prefix",
    "replace_link_target",
    "rewrite_links",
]
