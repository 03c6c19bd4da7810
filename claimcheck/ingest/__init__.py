"""Input extraction: uploaded documents and scraped links."""

from claimcheck.ingest.document_extractor import DocumentExtractor
from claimcheck.ingest.page_scraper import PageScraper

__all__ = ["DocumentExtractor", "PageScraper"]
