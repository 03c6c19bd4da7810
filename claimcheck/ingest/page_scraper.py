"""Web page scraping for link inputs.

Two strategies:
- shared chat conversations (chat.openai.com/share/, chatgpt.com/share/):
  messages from the embedded __NEXT_DATA__ JSON, then the rendered
  conversation turns, plus every outbound link under a "Sources:" footer
- any other page: trafilatura main-content extraction, falling back to
  BeautifulSoup body text with page chrome removed

Fetches go through the bounded HTTP client. Scraping never raises; any
failure yields an empty string.
"""

import json
import re
from typing import Any, Optional

import trafilatura
from bs4 import BeautifulSoup

from claimcheck.client.bounded_http import BoundedHttpClient, RequestLimits, is_valid_url
from claimcheck.config.logging import get_logger

SCRAPE_LIMITS = RequestLimits(timeout_ms=10_000, max_response_bytes=1_000_000)
CHAT_SHARE_MAX_CHARS = 30_000
PAGE_MAX_CHARS = 20_000

_CHAT_SHARE = re.compile(r"(chat\.openai\.com|chatgpt\.com)/share/", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_HTTP_LINK = re.compile(r"^https?://", re.IGNORECASE)
_CODE_LINE = re.compile(
    r"(function\s*\(|\bvar\s|\bconst\s|\blet\s|import\(|export\s|window\.|document\."
    r"|__NEXT_DATA__|webpackJsonp|;\)|\{.*\}|^[\[{][\s\S]*[\]}]$)",
    re.IGNORECASE,
)
_CHROME_TAGS = ["script", "style", "noscript", "template", "header", "footer", "nav", "aside"]


def is_chat_share(link: str) -> bool:
    return bool(_CHAT_SHARE.search(link or ""))


def _message_text(content: Any) -> str:
    if isinstance(content, dict):
        parts = content.get("parts")
        if isinstance(parts, list):
            return "\n".join(str(p) for p in parts if isinstance(p, str))
        if isinstance(content.get("text"), str):
            return content["text"]
    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = content[0].get("text")
        if isinstance(text, str):
            return text
    return ""


def collect_next_data_messages(data: Any) -> list[tuple[str, str]]:
    """(role, text) pairs found anywhere in a __NEXT_DATA__ tree."""
    messages: list[tuple[str, str]] = []
    stack = [data]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
            continue
        if not isinstance(node, dict):
            continue
        author = node.get("author")
        if isinstance(author, dict) and node.get("content"):
            text = _message_text(node["content"])
            if text:
                messages.append((str(author.get("role") or node.get("role") or ""), text))
        stack.extend(reversed(list(node.values())))
    return messages


def _with_role(role: str, text: str) -> str:
    return f"{role.upper()}: {text}" if role else text


class PageScraper:
    """Fetches a link and returns its readable text."""

    def __init__(
        self,
        http: BoundedHttpClient,
        limits: Optional[RequestLimits] = None,
    ) -> None:
        self.http = http
        self.limits = limits or SCRAPE_LIMITS
        self.logger = get_logger("PageScraper")

    async def scrape(self, link: str) -> str:
        """Readable text of ``link``; empty string on any failure."""
        if not is_valid_url(link):
            return ""
        try:
            response = await self.http.send(
                "GET",
                link,
                headers={"User-Agent": "Mozilla/5.0"},
                limits=self.limits,
            )
            if not response.is_success:
                self.logger.warning("Link fetch failed", status=response.status_code)
                return ""
            html = response.text
            if is_chat_share(link):
                return self.extract_chat_share(html)
            return self.extract_page(html)
        except Exception as e:
            self.logger.warning("Link scraping failed", error=str(e))
            return ""

    def extract_chat_share(self, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")

        structured = ""
        next_data = soup.find("script", id="__NEXT_DATA__")
        if next_data is not None and next_data.string:
            try:
                messages = collect_next_data_messages(json.loads(next_data.string))
            except ValueError:
                messages = []
            structured = "\n\n".join(_with_role(role, text).strip() for role, text in messages)

        parts: list[str] = []
        anchors: dict[str, None] = {}
        for turn in soup.select('[data-testid="conversation-turn"], [data-message-author-role]'):
            role = turn.get("data-message-author-role") or ""
            if not role:
                nested = turn.select_one("[data-message-author-role]")
                role = nested.get("data-message-author-role", "") if nested else ""
            text = turn.get_text(" ", strip=True)
            if len(text) > 10:
                part = _with_role(role, text)
                if part not in parts:
                    parts.append(part)
            self._collect_anchors(turn, anchors)

        if not parts:
            for block in soup.select("main, article, .prose"):
                text = block.get_text(" ", strip=True)
                if len(text) > 50:
                    parts.append(text)
                self._collect_anchors(block, anchors)

        combined = "\n\n".join(p for p in (structured, "\n\n".join(parts)) if p)
        if anchors:
            combined += "\n\nSources:\n" + "\n".join(anchors)

        lines = (line.strip() for line in combined.split("\n"))
        cleaned = "\n".join(line for line in lines if line and not _CODE_LINE.search(line))
        self.logger.debug("Chat share extracted", messages=len(parts), links=len(anchors))
        return cleaned[:CHAT_SHARE_MAX_CHARS]

    def _collect_anchors(self, element: Any, anchors: dict[str, None]) -> None:
        for a in element.select("a[href]"):
            href = a.get("href") or ""
            if _HTTP_LINK.search(href):
                anchors.setdefault(href, None)

    def extract_page(self, html: str) -> str:
        content = trafilatura.extract(
            html,
            include_comments=False,
            include_tables=True,
            favor_recall=True,
        )
        if content and content.strip():
            self.logger.debug("Page extracted with trafilatura", length=len(content))
            return _WHITESPACE.sub(" ", content).strip()[:PAGE_MAX_CHARS]

        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(_CHROME_TAGS):
            tag.decompose()
        text = ""
        for selector in ("main", "article", "body"):
            node = soup.find(selector)
            if node is not None:
                text = node.get_text(" ", strip=True)
                if text:
                    break
        if not text:
            text = soup.get_text(" ", strip=True)
        self.logger.debug("Page extracted with BeautifulSoup fallback", length=len(text))
        return _WHITESPACE.sub(" ", text).strip()[:PAGE_MAX_CHARS]
