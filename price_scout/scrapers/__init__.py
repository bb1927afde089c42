"""Retailer sources. The rendered adapter and registry live in their own modules."""
from .base import RawListing, Source, SourceFetcher, listing_to_deal
from .html import HtmlSource, SiteSelectors

__all__ = [
    "RawListing",
    "Source",
    "SourceFetcher",
    "listing_to_deal",
    "HtmlSource",
    "SiteSelectors",
]
